"""peerfix - resolve conflicting npm peer dependency versions.

    Returns:
        int: Exit code
"""
import json
import logging
import os
import sys

from constants import ExitCodes
from common.errors import ConfigError, RegistryError
from common.logging_utils import configure_logging
from config import build_config
from args import parse_args
from registry.npm.client import NpmRegistryClient
from registry.npm.package_json import load_package_json, package_json_path, update_package_json
from resolver.cache import MetadataCache
from resolver.evaluator import Evaluator
from versioning.models import ConflictState, EvaluationResult

logger = logging.getLogger(__name__)


def setup_logging(args):
    """Configure logging from --loglevel and --logfile."""
    configure_logging(getattr(args, "LOG_LEVEL", None))
    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        ))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def cli_overrides(args):
    """Resolution settings given on the command line."""
    return {
        "allowed_major_versions": args.MAJOR_VERSIONS,
        "allowed_minor_and_patch_versions": args.MINOR_VERSIONS,
        "allow_pre_releases": args.PRE_RELEASE,
        "pin_versions": args.PIN_VERSIONS,
        "force": args.FORCE,
        "cache_dir": args.CACHE_DIR,
    }


def export_json(result, path):
    """Exports the evaluation result and metrics to a JSON file.

    Args:
        result (EvaluationResult): Outcome of the evaluation.
        path (str): File path to export the JSON.
    """
    with open(path, 'w', encoding='utf-8') as file:
        json.dump(result.to_dict(), file, ensure_ascii=False, indent=4)
    logging.info("JSON file has been successfully exported at: %s", path)


def print_result(result):
    """Print resolved versions or the conflict summary with metrics."""
    if result.conflict_state.is_ok:
        print("Resolved peer dependencies:")
        for rp in sorted(result.result, key=lambda r: r.name):
            print(f"  {rp.name}@{rp.version}")
    else:
        print("Unable to resolve dependencies with the provided parameters.")
        print("Try allowing more major versions, enabling pre-releases or pinning packages.")
    for metric, value in result.metrics.to_dict().items():
        print(f"  {metric}: {value}")


def run(argv=None):
    """Run a full prepare/evaluate cycle and return the exit code."""
    args = parse_args(argv)
    setup_logging(args)

    try:
        config = build_config(args.CONFIG, cli_overrides(args))
    except ConfigError as e:
        logger.error("%s", e)
        return ExitCodes.FILE_ERROR.value

    try:
        manifest = load_package_json(args.PATH)
    except (OSError, ValueError) as e:
        logger.error("Couldn't read %s: %s", package_json_path(args.PATH), e)
        return ExitCodes.FILE_ERROR.value

    cache_dir = config.cache_dir
    if not os.path.isabs(cache_dir):
        cache_dir = os.path.join(os.path.dirname(os.path.abspath(package_json_path(args.PATH))), cache_dir)
    cache = MetadataCache(NpmRegistryClient(), cache_dir, force_regeneration=args.FORCE_REGENERATION)
    evaluator = Evaluator(
        cache,
        allowed_major_versions=config.allowed_major_versions,
        allowed_minor_and_patch_versions=config.allowed_minor_and_patch_versions,
        allow_pre_releases=config.allow_pre_releases,
        pin_versions=config.pin_versions,
        force=config.force,
        bundles=config.bundles,
    )

    exit_code = ExitCodes.SUCCESS.value
    try:
        logger.info("Preparing dependency resolution...")
        open_requirements = evaluator.prepare(manifest, args.EXCLUDE, args.INCLUDE, args.install)
        logger.info("Performing dependency resolution...")
        result = evaluator.evaluate(open_requirements)
    except RegistryError as e:
        logger.error("Registry lookup failed: %s", e)
        result = EvaluationResult(ConflictState.conflict(), evaluator.metrics)
        exit_code = ExitCodes.CONNECTION_ERROR.value

    if not args.QUIET:
        print_result(result)
    try:
        if args.OUTPUT:
            export_json(result, args.OUTPUT)
        if result.conflict_state.is_ok and args.MODIFY_JSON:
            update_package_json(args.PATH, result.result)
    except OSError as e:
        logger.error("Couldn't write output: %s", e)
        return ExitCodes.FILE_ERROR.value

    if exit_code == ExitCodes.SUCCESS.value and not result.conflict_state.is_ok:
        exit_code = ExitCodes.CONFLICT.value
    return exit_code


def main():
    """Main function of the program."""
    sys.exit(run())


if __name__ == "__main__":
    main()

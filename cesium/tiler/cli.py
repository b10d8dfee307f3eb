"""Command line interface: cesium-tiler NAME DESCRIPTION INPUT_DIR OUTPUT_FILE."""
import argparse
import logging
import sys
from typing import Optional, Sequence

from dotenv import find_dotenv, load_dotenv

from cesium.tiler.client import TilerClient
from cesium.tiler.config import TilerConfig
from cesium.tiler.exceptions import TilerError
from cesium.tiler.workflow import TilingWorkflow


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cesium-tiler",
        description="Tile a directory of 3D models with Cesium ion and download the archive.",
    )
    parser.add_argument("name", help="Name of the new asset")
    parser.add_argument("description", help="Description of the new asset")
    parser.add_argument("input_dir", help="Directory whose files are uploaded (not recursive)")
    parser.add_argument("output_file", help="Where to write the downloaded ZIP archive")
    parser.add_argument(
        "--env-file",
        default=None,
        help="Load environment variables from this file (default: nearest .env from the current directory)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # boto3 and urllib3 are noisy at DEBUG
    for name in ("boto3", "botocore", "urllib3", "s3transfer"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _describe_error(error: Exception, step: Optional[str]) -> str:
    kind = type(error).__name__
    if step:
        return f"{kind} during {step}: {error}"
    return f"{kind}: {error}"


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the tiling workflow once. Returns the process exit code."""
    args = _build_parser().parse_args(argv)
    _setup_logging(args.verbose)

    # without usecwd, find_dotenv searches from the calling module
    dotenv_path = args.env_file or find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path=dotenv_path)

    workflow = None
    try:
        config = TilerConfig.from_env()
        with TilerClient(config) as client:
            workflow = TilingWorkflow(client)
            result = workflow.run(args.name, args.description, args.input_dir, args.output_file)
    except (TilerError, OSError) as e:
        step = getattr(e, "step", None)
        if step is None and workflow is not None and workflow.failed_step is not None:
            step = workflow.failed_step.value
        print(_describe_error(e, step), file=sys.stderr)
        return 1

    report = result.upload_report
    print(f"Uploads: {report.summary()}")
    for failure in report.failed:
        print(f"  failed: {failure.path}: {failure.error}", file=sys.stderr)
    print(f"Archive {result.archive.id} written to {result.output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

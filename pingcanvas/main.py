"""
pingcanvas: draws an image onto an IPv6 range by pinging one address per pixel.

Examples:
  # defaults from config.yaml (logo.png at 109,75)
  pingcanvas

  # see what would be pinged and render it back to a file
  pingcanvas --image logo.png --offset 0 0 --preview out.png
"""

import argparse
import logging
import sys
from typing import Optional

import yaml

from pingcanvas.canvas import Canvas
from pingcanvas.config import Config, GlobalConfig
from pingcanvas.errors import ConversionError
from pingcanvas.logging_setup import setup_logging
from pingcanvas.runtime import Runtime
from pingcanvas.transport.dryrun import DryRunTransport

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="pingcanvas", description="Render an image as ICMPv6 echoes")
    ap.add_argument("--config", default="config.yaml", help="YAML config (defaults apply if missing)")
    ap.add_argument("--log-config", default="log_conf.yaml", help="logging dictConfig YAML")
    ap.add_argument("--log-level", default=None, help="DEBUG/INFO/WARNING/ERROR")
    ap.add_argument("--image", default=None, help="image to draw")
    ap.add_argument("--offset", type=int, nargs=2, metavar=("X", "Y"), default=None,
                    help="top-left corner of the image on the canvas")
    ap.add_argument("--timeout", type=float, default=None, help="per-probe window in seconds")
    ap.add_argument("--transport", default=None, help="icmp:// or dryrun://")
    ap.add_argument("--dry-run", action="store_true", help="send nothing, only log addresses")
    ap.add_argument("--preview", default=None, metavar="PATH",
                    help="dry run and save the canvas rebuilt from the probed addresses")
    return ap


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_config, args.log_level)

    try:
        data = Config(args.config).load().model_dump()
        if args.image is not None:
            data["image"]["path"] = args.image
        if args.offset is not None:
            data["image"]["offset"] = tuple(args.offset)
        if args.timeout is not None:
            data["probe"]["timeout"] = args.timeout
        if args.transport is not None:
            data["probe"]["transport"] = args.transport
        if args.dry_run or args.preview:
            data["probe"]["transport"] = "dryrun://"
        cfg = GlobalConfig.model_validate(data)
        runtime = Runtime(cfg)
    except (ValueError, yaml.YAMLError) as e:
        # pydantic ValidationError is a ValueError too
        print(f"error: invalid configuration: {e}", file=sys.stderr)
        return 2

    try:
        report = runtime.run()
    except ConversionError as e:
        logger.error(f"Cannot draw {cfg.image.path}: {e}")
        print(f"error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        logger.error(f"Transport failure: {e}")
        print(f"error: transport failure: {e}", file=sys.stderr)
        return 2

    if args.preview and isinstance(runtime.transport, DryRunTransport):
        canvas = Canvas(cfg.canvas)
        canvas.apply_all(runtime.transport.addresses)
        canvas.save(args.preview)

    logger.info(f"Done: {report.total} probes, {report.failed} failed to start")
    return 0


if __name__ == "__main__":
    sys.exit(main())

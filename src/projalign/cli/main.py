from __future__ import annotations

import argparse
import logging
from pathlib import Path

import requests

from projalign.cli.generate_warp import resolve_camera_pose, run_generate_warp
from projalign.cli.locate_camera import run_locate_camera
from projalign.config import (
    DEFAULT_DOME_RADIUS,
    DEFAULT_EYE,
    DEFAULT_PATTERN_SIZE,
    DEFAULT_PROJECTOR_RESOLUTION,
    parse_resolution,
    parse_surface,
    parse_vec3,
)
from projalign.core.intrinsics import load_calibration_xml
from projalign.devices.control import ProjectorControl
from projalign.devices.photo import photo_source_from_option
from projalign.errors import AlignerError

logger = logging.getLogger("projalign")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="projalign", description="Projection warp and alignment generator.")
    parser.add_argument("-s", "--surface-type", default="dome", choices=["dome", "wall"])
    parser.add_argument(
        "-x",
        "--camera-xml-file",
        type=Path,
        required=True,
        help="XML file with the camera matrix, distortion coefficients and image size.",
    )
    parser.add_argument("--control-url", default=None, help="URL to control and show images on the projector.")
    parser.add_argument(
        "-c",
        "--camera",
        default=None,
        help="http(s) URL or image file to use for camera photos (default: USB tethered camera via gphoto2).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    warp = sub.add_parser("generate-warp", help="Calculate frustum and warp for a single projector.")
    warp.add_argument(
        "-j",
        "--camera-location-json",
        type=Path,
        default=None,
        help="Output of locate-camera. Ignored for a dome (the camera sits at the dome centre).",
    )
    warp.add_argument("-p", "--pattern-size", default=DEFAULT_PATTERN_SIZE, help="Chessboard interior corners, WxH.")
    warp.add_argument("-z", "--resolution", default=DEFAULT_PROJECTOR_RESOLUTION, help="Projector output resolution, WxH.")
    warp.add_argument("--eye", default=DEFAULT_EYE, help="Eye position in scene space, x,y,z.")
    warp.add_argument("--radius", type=float, default=DEFAULT_DOME_RADIUS, help="Dome radius (dome surface only).")
    warp.add_argument("--out", type=Path, default=None, help="Write the calibration JSON here.")
    warp.add_argument(
        "--post-to-url",
        default=None,
        help="HTTP POST the generated warp and eye point configuration to this URL.",
    )
    warp.add_argument(
        "--no-wait",
        action="store_true",
        help="Do not wait for the operator to display the pattern (no control URL).",
    )

    locate = sub.add_parser("locate-camera", help="Locate the physical camera relative to a single ArUco marker.")
    locate.add_argument("-m", "--marker-size", type=float, required=True, help="ArUco marker size in meters.")
    locate.add_argument("--dictionary", default="DICT_6X6_250")
    locate.add_argument("--out", type=Path, default=None, help="Write the camera location JSON here.")
    return parser


def _run(args: argparse.Namespace) -> int:
    intrinsics = load_calibration_xml(args.camera_xml_file)
    photo_source = photo_source_from_option(args.camera)

    if args.cmd == "generate-warp":
        surface = parse_surface(args.surface_type, args.radius)
        run_generate_warp(
            surface=surface,
            intrinsics=intrinsics,
            photo_source=photo_source,
            pose=resolve_camera_pose(surface, args.camera_location_json),
            pattern=parse_resolution(args.pattern_size),
            projector=parse_resolution(args.resolution),
            eye=parse_vec3(args.eye),
            control=ProjectorControl(args.control_url) if args.control_url else None,
            out_json=args.out,
            post_to_url=args.post_to_url,
            prompt=None if args.no_wait else input,
        )
        return 0

    if args.cmd == "locate-camera":
        run_locate_camera(
            intrinsics=intrinsics,
            photo_source=photo_source,
            marker_size=args.marker_size,
            dictionary=args.dictionary,
            out_json=args.out,
        )
        return 0

    raise AssertionError(f"Unhandled cmd: {args.cmd}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return _run(args)
    except (AlignerError, requests.RequestException, OSError, ValueError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

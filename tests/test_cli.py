from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import pytest

from projalign.cli import generate_warp as generate_warp_mod
from projalign.cli import locate_camera as locate_camera_mod
from projalign.cli.generate_warp import resolve_camera_pose, run_generate_warp
from projalign.cli.locate_camera import run_locate_camera
from projalign.cli.main import main
from projalign.config import Resolution
from projalign.core.pose import DOME_CAMERA_POSE, WALL_CAMERA_POSE
from projalign.core.surfaces import Dome, Wall
from projalign.devices import control as control_mod
from projalign.errors import DetectionError
from projalign.vision.aruco import MarkerDetections
from projalign.vision.chessboard import chessboard_image
from projalign.vision.image_io import encode_png


@dataclass
class _FakeSource:
    image: np.ndarray
    captures: int = 0

    def capture(self) -> np.ndarray:
        self.captures += 1
        return self.image


@dataclass
class _FakeControl:
    images: list[tuple[bytes, str]] = field(default_factory=list)
    commands: list[tuple[str, dict | None]] = field(default_factory=list)

    def show_image(self, data: bytes, fmt: str = "png") -> None:
        self.images.append((data, fmt))

    def send_command(self, command: str, payload: dict | None = None) -> None:
        self.commands.append((command, payload))


def _grid(cx: float, cy: float, step: float, nx: int, ny: int) -> np.ndarray:
    xs = cx + step * (np.arange(nx) - (nx - 1) / 2.0)
    ys = cy + step * (np.arange(ny) - (ny - 1) / 2.0)
    return np.array([[x, y] for y in ys for x in xs], dtype=np.float64)


def test_resolve_camera_pose(tmp_path: Path) -> None:
    loc = tmp_path / "location.json"
    loc.write_text(
        json.dumps({"position": [1.0, 0.0, 3.0], "direction": [0.0, 0.0, 0.0], "up": [0.0, 1.0, 0.0], "fov": 30.0}),
        encoding="utf-8",
    )
    assert resolve_camera_pose(Dome(radius=5.0), loc) == DOME_CAMERA_POSE
    assert resolve_camera_pose(Wall(), None) == WALL_CAMERA_POSE
    assert resolve_camera_pose(Wall(), loc).position == (1.0, 0.0, 3.0)


def test_run_generate_warp_with_projector_control(monkeypatch: pytest.MonkeyPatch, intrinsics) -> None:
    pattern = Resolution(3, 4)
    seen: dict[str, object] = {}

    def fake_find(gray, width, height):
        seen["size"] = (width, height)
        return _grid(100.0, 100.0, 30.0, width, height)

    monkeypatch.setattr(generate_warp_mod, "undistort", lambda img, intr: img)
    monkeypatch.setattr(generate_warp_mod, "find_pattern_corners", fake_find)

    source = _FakeSource(np.zeros((200, 200), dtype=np.uint8))
    control = _FakeControl()
    out = run_generate_warp(
        surface=Dome(radius=5.0),
        intrinsics=intrinsics,
        photo_source=source,
        pose=DOME_CAMERA_POSE,
        pattern=pattern,
        projector=Resolution(1024, 768),
        control=control,
    )

    assert seen["size"] == (3, 4)
    assert source.captures == 1
    assert len(control.images) == 1 and control.images[0][1] == "png"
    assert control.commands == [("set_calibration", out.to_dict())]
    assert out.warp.shape == (12, 2)
    assert (out.warp_res_x, out.warp_res_y) == (3, 4)


def test_run_generate_warp_prompts_and_prints(monkeypatch: pytest.MonkeyPatch, capsys, intrinsics) -> None:
    monkeypatch.setattr(generate_warp_mod, "undistort", lambda img, intr: img)
    monkeypatch.setattr(generate_warp_mod, "find_pattern_corners", lambda g, w, h: _grid(320.0, 240.0, 50.0, w, h))
    prompts: list[str] = []

    out = run_generate_warp(
        surface=Wall(),
        intrinsics=intrinsics,
        photo_source=_FakeSource(np.zeros((480, 640), dtype=np.uint8)),
        pose=WALL_CAMERA_POSE,
        pattern=Resolution(5, 4),
        projector=Resolution(1920, 1080),
        eye=(0.0, 0.0, 3.0),
        prompt=lambda msg: prompts.append(msg) or "",
    )
    assert len(prompts) == 1
    printed = json.loads(capsys.readouterr().out)
    assert printed == json.loads(out.to_json())



class _Posted:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict, float]] = []

    def __call__(self, url, json, timeout):
        self.calls.append((url, json, timeout))
        return self

    def raise_for_status(self) -> None:
        pass


def test_run_generate_warp_posts_to_url(monkeypatch: pytest.MonkeyPatch, capsys, intrinsics) -> None:
    monkeypatch.setattr(generate_warp_mod, "undistort", lambda img, intr: img)
    monkeypatch.setattr(generate_warp_mod, "find_pattern_corners", lambda g, w, h: _grid(100.0, 100.0, 30.0, w, h))
    posted = _Posted()
    monkeypatch.setattr(control_mod.requests, "post", posted)

    out = run_generate_warp(
        surface=Dome(radius=5.0),
        intrinsics=intrinsics,
        photo_source=_FakeSource(np.zeros((200, 200), dtype=np.uint8)),
        pose=DOME_CAMERA_POSE,
        pattern=Resolution(3, 4),
        projector=Resolution(1024, 768),
        post_to_url="http://content-server/warp",
        prompt=None,
    )

    assert len(posted.calls) == 1
    url, body, _timeout = posted.calls[0]
    assert url == "http://content-server/warp"
    assert body == out.to_dict()
    assert capsys.readouterr().out == ""


def test_main_post_to_url(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, calibration_xml) -> None:
    xml = tmp_path / "camera.xml"
    xml.write_text(calibration_xml, encoding="utf-8")
    photo = tmp_path / "photo.png"
    photo.write_bytes(encode_png(np.zeros((480, 640), dtype=np.uint8)))
    monkeypatch.setattr(generate_warp_mod, "undistort", lambda img, intr: img)
    monkeypatch.setattr(generate_warp_mod, "find_pattern_corners", lambda g, w, h: _grid(320.0, 240.0, 10.0, w, h))
    posted = _Posted()
    monkeypatch.setattr(control_mod.requests, "post", posted)

    argv = ["--camera-xml-file", str(xml), "--camera", str(photo), "generate-warp", "--pattern-size", "5x4"]
    assert main(argv + ["--no-wait", "--post-to-url", "http://content-server/warp"]) == 0
    assert [c[0] for c in posted.calls] == ["http://content-server/warp"]
    assert posted.calls[0][1]["warpResX"] == 5

def test_run_locate_camera(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, intrinsics) -> None:
    def fake_detect(gray, intr, marker_size, dictionary):
        return MarkerDetections(
            ids=np.array([3], dtype=np.int32),
            corners=[np.zeros((4, 2))],
            rvecs=np.zeros((1, 3)),
            tvecs=np.array([[0.0, 0.0, -1.0]]),
        )

    monkeypatch.setattr(locate_camera_mod, "detect_markers", fake_detect)
    out_json = tmp_path / "location.json"
    loc = run_locate_camera(
        intrinsics=intrinsics,
        photo_source=_FakeSource(np.zeros((10, 10), dtype=np.uint8)),
        marker_size=0.1,
        out_json=out_json,
    )
    data = json.loads(out_json.read_text(encoding="utf-8"))
    assert data == {"position": [0.0, 0.0, 1.0], "direction": [0.0, 0.0, 1.0], "up": [0.0, -1.0, 0.0], "fov": loc.fov}


def test_run_locate_camera_needs_exactly_one_marker(monkeypatch: pytest.MonkeyPatch, intrinsics) -> None:
    def fake_detect(gray, intr, marker_size, dictionary):
        return MarkerDetections(
            ids=np.array([1, 2], dtype=np.int32),
            corners=[np.zeros((4, 2)), np.zeros((4, 2))],
            rvecs=np.zeros((2, 3)),
            tvecs=np.ones((2, 3)),
        )

    monkeypatch.setattr(locate_camera_mod, "detect_markers", fake_detect)
    with pytest.raises(DetectionError):
        run_locate_camera(
            intrinsics=intrinsics,
            photo_source=_FakeSource(np.zeros((10, 10), dtype=np.uint8)),
            marker_size=0.1,
        )


def test_main_reports_config_errors(tmp_path: Path, calibration_xml) -> None:
    xml = tmp_path / "camera.xml"
    xml.write_text(calibration_xml, encoding="utf-8")
    argv = ["--camera-xml-file", str(xml), "--camera", str(tmp_path / "photo.png"), "generate-warp"]
    assert main(argv + ["--pattern-size", "25by16"]) == 1
    assert main(argv + ["--eye", "1,2"]) == 1
    assert main(["--camera-xml-file", str(tmp_path / "missing.xml"), "generate-warp"]) == 1


@pytest.mark.integration
def test_main_generate_warp_from_photo_file(tmp_path: Path, calibration_xml) -> None:
    pytest.importorskip("cv2")
    xml = tmp_path / "camera.xml"
    xml.write_text(calibration_xml, encoding="utf-8")

    # A photo of the displayed board, centred in a 640x480 frame.
    board = chessboard_image(5, 4, square_px=40)[:, :, 0]
    photo = np.zeros((480, 640), dtype=np.uint8)
    y0 = (480 - board.shape[0]) // 2
    x0 = (640 - board.shape[1]) // 2
    photo[y0 : y0 + board.shape[0], x0 : x0 + board.shape[1]] = board
    photo_path = tmp_path / "photo.png"
    from PIL import Image

    Image.fromarray(photo).save(photo_path)

    out = tmp_path / "calibration.json"
    rc = main(
        [
            "--surface-type",
            "wall",
            "--camera-xml-file",
            str(xml),
            "--camera",
            str(photo_path),
            "generate-warp",
            "--pattern-size",
            "5x4",
            "--resolution",
            "1920x1080",
            "--eye",
            "0,0,3",
            "--out",
            str(out),
            "--no-wait",
        ]
    )
    assert rc == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["warpResX"] == 5 and data["warpResY"] == 4
    assert len(data["warp"]) == 20
    assert all(len(uv) == 2 and all(np.isfinite(uv)) for uv in data["warp"])

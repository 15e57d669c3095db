import json
import logging

import pytest

from pi_vision.camera_config import CameraConfig, SwitchedCameraConfig, parse_config, read_config
from pi_vision.errors import ConfigError

FULL_CONFIG = {
    "team": 2429,
    "ntmode": "server",
    "cameras": [
        {
            "name": "front",
            "path": "/dev/video0",
            "pixel format": "MJPEG",
            "width": 320,
            "height": 240,
            "fps": 30,
            "stream": {"properties": [{"name": "compression", "value": 30}]},
        },
        {"name": "rear", "path": "/dev/video1"},
    ],
    "switched cameras": [
        {"name": "driver", "key": "/SmartDashboard/camera"},
    ],
}


@pytest.mark.unit
def test_parse_full_config():
    deployment = parse_config(FULL_CONFIG, "frc.json")
    assert deployment.team == 2429
    assert deployment.server is True
    assert [c.name for c in deployment.cameras] == ["front", "rear"]
    assert deployment.cameras[0] == CameraConfig(name="front", path="/dev/video0")
    assert deployment.cameras[0].settings["fps"] == 30
    assert deployment.cameras[0].stream == {"properties": [{"name": "compression", "value": 30}]}
    assert deployment.cameras[1].stream is None
    assert deployment.switched_cameras == (SwitchedCameraConfig("driver", "/SmartDashboard/camera"),)


@pytest.mark.unit
def test_defaults_to_client_without_switched_cameras():
    deployment = parse_config({"team": 1, "cameras": []})
    assert deployment.server is False
    assert deployment.cameras == ()
    assert deployment.switched_cameras == ()


@pytest.mark.unit
def test_ntmode_is_case_insensitive():
    assert parse_config({"team": 1, "ntmode": "SERVER", "cameras": []}).server is True
    assert parse_config({"team": 1, "ntmode": "Client", "cameras": []}).server is False


@pytest.mark.unit
def test_unknown_ntmode_is_reported_but_not_fatal(caplog):
    with caplog.at_level(logging.ERROR):
        deployment = parse_config({"team": 1, "ntmode": "peer", "cameras": []}, "frc.json")
    assert deployment.server is False
    assert "could not understand ntmode value 'peer'" in caplog.text


@pytest.mark.unit
@pytest.mark.parametrize("document, message", [
    ([], "must be JSON object"),
    ({"cameras": []}, "could not read team number"),
    ({"team": "2429", "cameras": []}, "could not read team number"),
    ({"team": True, "cameras": []}, "could not read team number"),
    ({"team": 1}, "could not read cameras"),
    ({"team": 1, "cameras": [{"path": "/dev/video0"}]}, "could not read camera name"),
    ({"team": 1, "cameras": [{"name": "front"}]}, "camera 'front': could not read path"),
    ({"team": 1, "cameras": ["front"]}, "camera entry must be JSON object"),
    ({"team": 1, "cameras": [], "switched cameras": [{"key": "k"}]}, "could not read switched camera name"),
    ({"team": 1, "cameras": [], "switched cameras": [{"name": "driver"}]}, "switched camera 'driver': could not read key"),
])
def test_malformed_config(document, message):
    with pytest.raises(ConfigError) as excinfo:
        parse_config(document, "frc.json")
    assert str(excinfo.value) == f"config error in 'frc.json': {message}"


@pytest.mark.unit
def test_read_config_from_file(tmp_path):
    path = tmp_path / "frc.json"
    path.write_text(json.dumps(FULL_CONFIG))
    deployment = read_config(path)
    assert deployment.team == 2429
    assert len(deployment.cameras) == 2


@pytest.mark.unit
def test_read_config_missing_file(tmp_path):
    path = tmp_path / "missing.json"
    with pytest.raises(ConfigError, match="could not open"):
        read_config(path)


@pytest.mark.unit
def test_read_config_invalid_json(tmp_path):
    path = tmp_path / "frc.json"
    path.write_text("{ team: ")
    with pytest.raises(ConfigError, match="could not open"):
        read_config(path)

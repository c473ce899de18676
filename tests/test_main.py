import logging

import pytest
import requests

from conftest import DummyResponse, DummySession
from osm_tile_downloader import __main__ as cli

URL = "http://tiles.example.com/{z}/{x}/{y}.png"


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "setup_logging", lambda verbose=False, log_file=None: None)


@pytest.fixture
def session(monkeypatch):
    session = DummySession()
    session.opened = 0

    def open_session():
        session.opened += 1
        return session

    monkeypatch.setattr(requests, "Session", open_session)
    return session


def base_args(tmp_path, *extra):
    return ["-s", "0", "-e", "1", "-u", URL, "-o", str(tmp_path), "-r", "0", *extra]


def refuse(prompt):
    raise AssertionError("confirmation should not be asked")


def test_downloads_all_tiles(tmp_path, session):
    assert cli.main(base_args(tmp_path, "-y"), input_func=refuse) == 0

    assert len(session.calls) == 5
    assert (tmp_path / "1" / "1" / "1.png").exists()


def test_confirmed_run(tmp_path, session):
    prompts = []

    def answer(prompt):
        prompts.append(prompt)
        return "yes"

    assert cli.main(base_args(tmp_path), input_func=answer) == 0
    assert prompts == ["Proceed with downloading 5 tiles? [yes/no] "]
    assert len(session.calls) == 5


def test_declined_confirmation_exits_cleanly(tmp_path, session, caplog):
    caplog.set_level(logging.INFO)

    assert cli.main(base_args(tmp_path), input_func=lambda prompt: "no") == 0

    assert session.calls == []
    assert list(tmp_path.iterdir()) == []
    assert "Cancelled" in caplog.text


def test_declined_confirmation_opens_no_session(tmp_path, session):
    assert cli.main(base_args(tmp_path), input_func=lambda prompt: "no") == 0

    assert session.opened == 0


def test_accepted_confirmation_opens_and_closes_session(tmp_path, session):
    assert cli.main(base_args(tmp_path), input_func=lambda prompt: "y") == 0

    assert session.opened == 1
    assert session.closed


@pytest.mark.parametrize("args", [
    ["-s", "abc", "-e", "1", "-u", URL, "-y"],
    ["-s", "0", "-e", "1", "-u", URL, "--bogus", "-y"],
    ["-s", "0", "-e", "1", "-u", URL, "-d", "1.5", "-y"],
])
def test_malformed_options_exit_one(tmp_path, session, args, capsys):
    assert cli.main(args + ["-o", str(tmp_path)]) == 1

    assert "error:" in capsys.readouterr().err
    assert session.calls == []


def test_check_tiles_without_url(tmp_path, session, caplog):
    caplog.set_level(logging.INFO)
    args = ["-s", "0", "-e", "0", "-o", str(tmp_path), "-c", "-y"]

    assert cli.main(args, input_func=refuse) == 0

    assert session.calls == []
    assert "is missing" in caplog.text


def test_invalid_configuration_exits_one(tmp_path, session, capsys):
    assert cli.main(["-s", "3", "-e", "1", "-u", URL, "-o", str(tmp_path), "-y"]) == 1

    assert "Start zoom level must be lower than end zoom level" in capsys.readouterr().err
    assert session.calls == []


def test_force_and_check_rejected(tmp_path, session):
    assert cli.main(base_args(tmp_path, "-f", "-c", "-y")) == 1


def test_missing_output_dir_rejected(tmp_path, session):
    assert cli.main(["-s", "0", "-e", "0", "-u", URL, "-o", str(tmp_path / "nope"), "-y"]) == 1


def test_unreadable_config_file_exits_one(tmp_path, session):
    assert cli.main(["--config", str(tmp_path / "missing.yaml")]) == 1


def test_transport_error_exits_two(tmp_path, session):
    session.outcomes["http://tiles.example.com/0/0/0.png"] = [requests.exceptions.ConnectionError("down")]

    assert cli.main(base_args(tmp_path, "-y")) == 2
    assert len(session.calls) == 1


def test_stream_error_exits_three(tmp_path, session):
    broken = DummyResponse(200, [b"half"], error=requests.exceptions.ChunkedEncodingError("reset"))
    session.outcomes["http://tiles.example.com/1/0/1.png"] = [broken]

    assert cli.main(base_args(tmp_path, "-y")) == 3
    assert len(session.calls) == 3


def test_non_200_is_not_fatal(tmp_path, session):
    session.outcomes["http://tiles.example.com/0/0/0.png"] = [500]

    assert cli.main(base_args(tmp_path, "-y", "-m", "1")) == 0

    assert session.urls.count("http://tiles.example.com/0/0/0.png") == 2
    assert not (tmp_path / "0" / "0" / "0.png").exists()
    assert (tmp_path / "1" / "0" / "0.png").exists()


def test_settings_from_yaml_file(tmp_path, session):
    output = tmp_path / "tiles"
    output.mkdir()
    config = tmp_path / "config.yaml"
    config.write_text(
        "start_zoom: 0\n"
        "end_zoom: 0\n"
        f"url: '{URL}'\n"
        f"output_dir: '{output}'\n"
        "yes: true\n"
    )

    assert cli.main(["--config", str(config), "-e", "1"], input_func=refuse) == 0

    assert len(session.calls) == 5
    assert (output / "1" / "0" / "1.png").exists()


def test_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--version"])
    assert excinfo.value.code == 0
    assert cli.__version__ in capsys.readouterr().out

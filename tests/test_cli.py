import json
import logging

import pytest
from randomwalk.cli import main


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logging.getLogger().handlers.clear()


@pytest.fixture
def props_file(tmp_path, sqlite_props):
    path = tmp_path / "walk.properties"
    path.write_text("\n".join(f"{k}={v}" for k, v in sqlite_props.items()))
    return path


def test_probe_reports_handles(props_file, capsys):
    main(["--log-level", "WARNING", "probe", "--props", str(props_file), "--max-visits", "10", "--with-writer"])

    summary = json.loads(capsys.readouterr().out)
    assert summary["driver"] == "sqlite"
    assert summary["principal"] == "root"
    assert summary["max_visits"] == 10
    assert summary["connected"] is True
    assert summary["writer"]["max_write_threads"] == 2


def test_probe_missing_property_exits(tmp_path):
    path = tmp_path / "broken.properties"
    path.write_text("ZOOKEEPERS=localhost\n")

    with pytest.raises(SystemExit, match="INSTANCE"):
        main(["probe", "--props", str(path)])

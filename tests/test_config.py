import pytest
from unittest.mock import patch
from randomwalk.config import Properties, load_properties, parse_properties
from randomwalk.exceptions import ConfigurationError


class TestProperties:
    def test_values_are_copied(self):
        source = {"INSTANCE": "test"}
        props = Properties(source)
        source["INSTANCE"] = "changed"

        assert props["INSTANCE"] == "test"

    def test_values_are_strings_and_none_dropped(self):
        props = Properties({"MAX_MEM": 1024, "UNSET": None})

        assert props["MAX_MEM"] == "1024"
        assert "UNSET" not in props
        assert props.get("UNSET") is None

    def test_read_only(self):
        props = Properties({"A": "1"})
        with pytest.raises(TypeError):
            props["A"] = "2"

    def test_require_missing(self):
        with pytest.raises(ConfigurationError, match="INSTANCE"):
            Properties({}).require("INSTANCE")

    def test_require_blank(self):
        with pytest.raises(ConfigurationError):
            Properties({"INSTANCE": "  "}).require("INSTANCE")

    def test_get_int(self):
        assert Properties({"NUM_THREADS": " 4 "}).get_int("NUM_THREADS") == 4

    def test_get_int_not_a_number(self):
        with pytest.raises(ConfigurationError, match="not a number"):
            Properties({"MAX_MEM": "lots"}).get_int("MAX_MEM")

    def test_get_int_below_minimum(self):
        with pytest.raises(ConfigurationError, match=">= 1"):
            Properties({"NUM_THREADS": "0"}).get_int("NUM_THREADS", minimum=1)

    def test_get_float_optional(self):
        props = Properties({"RESOURCE_TIMEOUT": "2.5"})
        assert props.get_float("RESOURCE_TIMEOUT") == 2.5
        assert props.get_float("CONNECT_TIMEOUT") is None

    def test_repr_hides_password(self):
        text = repr(Properties({"USERNAME": "root", "PASSWORD": "secret"}))
        assert "secret" not in text
        assert "root" in text

    def test_from_env(self):
        env = {"RW_INSTANCE": "walk", "RW_ZOOKEEPERS": "zk1:2181", "INSTANCE": "ignored"}
        with patch.dict("os.environ", env, clear=True):
            props = Properties.from_env()

        assert dict(props) == {"INSTANCE": "walk", "ZOOKEEPERS": "zk1:2181"}


class TestPropertiesFiles:
    def test_parse_properties(self):
        props = parse_properties(
            [
                "# comment",
                "! also a comment",
                "",
                "INSTANCE = walk",
                "ZOOKEEPERS: zk1:2181,zk2:2181",
                "PASSWORD=a=b",
                "FLAG",
            ]
        )

        assert props["INSTANCE"] == "walk"
        assert props["ZOOKEEPERS"] == "zk1:2181,zk2:2181"
        assert props["PASSWORD"] == "a=b"
        assert props["FLAG"] == ""
        assert len(props) == 4

    def test_load_properties(self, tmp_path):
        path = tmp_path / "walk.properties"
        path.write_text("INSTANCE=walk\nMAX_MEM=100\n")

        props = load_properties(path)

        assert props.get_int("MAX_MEM") == 100

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_properties(tmp_path / "nope.properties")

"""Tests for the restricted settings-object parser."""

import pytest

from uuid2asset.web.settings_parser import extract_settings, parse_object_literal


class TestParseObjectLiteral:
    def test_javascript_syntax(self):
        text = """{
            // bundle hashes
            bundleVers: {main: 'a1b2', "resources": "c3d4"},
            jsList: ['assets/a.js', "b.js",],
            debug: false, count: 0x1F, scale: 1.5e2, missing: undefined,
            /* block */ 'quoted\\'key': "line\\nbreak",
        }"""
        value, end = parse_object_literal(text)
        assert value == {
            "bundleVers": {"main": "a1b2", "resources": "c3d4"},
            "jsList": ["assets/a.js", "b.js"],
            "debug": False,
            "count": 31,
            "scale": 150.0,
            "missing": None,
            "quoted'key": "line\nbreak",
        }
        assert end == len(text)

    def test_returns_end_offset(self):
        text = "x = {a: 1}; more()"
        value, end = parse_object_literal(text, 4)
        assert value == {"a": 1}
        assert text[end:] == "; more()"

    @pytest.mark.parametrize(
        "text",
        ["{a: foo()}", "{a: 1 + 2}", "{a: window.x}", "{a: 'open", "{a 1}", "[1 2]"],
    )
    def test_rejects_non_literals(self, text):
        with pytest.raises(ValueError):
            parse_object_literal(text)


class TestExtractSettings:
    def test_assignment_in_script(self):
        script = "window._CCSettings = {platform: 'web', bundleVers: {main: 'ff'}};"
        assert extract_settings(script)["bundleVers"] == {"main": "ff"}

    def test_plain_json_with_js_list(self):
        assert extract_settings('{"jsList": ["a.js"]}') == {"jsList": ["a.js"]}

    def test_plain_json_without_js_list(self):
        assert extract_settings('{"platform": "web"}') is None

    def test_unparseable_assignment(self):
        assert extract_settings("_CCSettings = {a: eval('x')};") is None

    def test_unrelated_script(self):
        assert extract_settings("console.log('hello');") is None

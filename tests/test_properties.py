from pathlib import Path

from recursive_wrapper.foundation.properties import (
    format_properties,
    load_properties,
    parse_properties,
    store_properties,
)


def test_parses_gradle_wrapper_properties():
    text = "\n".join(
        [
            "#Generated",
            "! also a comment",
            "distributionBase=GRADLE_USER_HOME",
            "distributionUrl=https\\://services.gradle.org/distributions/gradle-8.5-bin.zip",
            "networkTimeout : 10000",
            "zipStorePath wrapper/dists",
            "",
        ]
    )

    assert parse_properties(text) == {
        "distributionBase": "GRADLE_USER_HOME",
        "distributionUrl": "https://services.gradle.org/distributions/gradle-8.5-bin.zip",
        "networkTimeout": "10000",
        "zipStorePath": "wrapper/dists",
    }


def test_continuation_lines_and_unicode_escapes():
    text = "key=first \\\n    second\nname=caf\\u00e9\n"

    assert parse_properties(text) == {"key": "first second", "name": "café"}


def test_format_escapes_separators_and_sorts_keys():
    text = format_properties({"zeta": "1", "distributionUrl": "https://host/a=b"})

    assert text == "distributionUrl=https\\://host/a\\=b\nzeta=1\n"


def test_store_then_load(tmp_path: Path):
    path = tmp_path / "gradle-wrapper.properties"
    store_properties(path, {"distributionUrl": "https://example.test/gradle-8.5-all.zip", "odd key": " lead"})

    assert load_properties(path) == {
        "distributionUrl": "https://example.test/gradle-8.5-all.zip",
        "odd key": " lead",
    }

from __future__ import annotations

import pytest

from iris_app.language import DEFAULT_LANGUAGE, FAILURE_MESSAGES, LANGUAGE_NAMES, failure_message, resolve


@pytest.mark.parametrize("code", sorted(LANGUAGE_NAMES))
def test_every_known_prefix_resolves_to_a_name(code: str) -> None:
    assert resolve(code)
    assert resolve(code) == LANGUAGE_NAMES[code]


@pytest.mark.parametrize(
    ("code", "expected"),
    [
        ("zh-Hans-CN", "Chinese"),
        ("zh_TW", "Chinese"),
        ("JA", "Japanese"),
        ("pt-BR", "Portuguese"),
        ("nb_NO", "Norwegian"),
        (" fr_CA ", "French"),
    ],
)
def test_region_and_script_subtags_are_ignored(code: str, expected: str) -> None:
    assert resolve(code) == expected


@pytest.mark.parametrize("code", ["xx", "klingon", "", "_", "-US", None])
def test_unknown_codes_fall_back_to_english(code) -> None:
    assert resolve(code) == "English"


def test_failure_message_is_localised_with_english_fallback() -> None:
    assert failure_message("Chinese") == FAILURE_MESSAGES["Chinese"]
    assert failure_message("Klingon") == FAILURE_MESSAGES[DEFAULT_LANGUAGE]
    assert failure_message(resolve("xx")) == FAILURE_MESSAGES["English"]


@pytest.mark.parametrize("name", sorted(set(LANGUAGE_NAMES.values())))
def test_every_resolvable_language_has_its_own_failure_message(name: str) -> None:
    assert name in FAILURE_MESSAGES
    if name != DEFAULT_LANGUAGE:
        assert failure_message(name) != FAILURE_MESSAGES[DEFAULT_LANGUAGE]

"""Tests for the keyword input guardrail."""

import pytest

from aicode.guardrail import DEFAULT_SENSITIVE_WORDS, SafeInputGuardrail


@pytest.fixture
def guardrail():
    return SafeInputGuardrail()


@pytest.mark.parametrize(
    "text",
    [
        "how do I kill a process in linux",
        "KILL the server",
        "is this code evil?",
        "kill-switch design",
        "evil!!!",
    ],
)
def test_banned_word_as_token_is_unsafe(guardrail, text):
    result = guardrail.validate(text)

    assert not result.safe
    assert result.reason is not None
    assert result.reason.startswith("Sensitive word detected: ")


@pytest.mark.parametrize(
    "text",
    [
        "the skill tree of a backend engineer",
        "devil in the details",
        "killer features of python",
        "medieval history",
        "",
    ],
)
def test_banned_word_inside_longer_word_is_safe(guardrail, text):
    result = guardrail.validate(text)

    assert result.safe
    assert result.reason is None


def test_reason_names_the_word(guardrail):
    assert guardrail.validate("Kill it").reason == "Sensitive word detected: kill"


def test_default_words():
    assert SafeInputGuardrail().words() == sorted(DEFAULT_SENSITIVE_WORDS)


def test_add_word_is_case_insensitive(guardrail):
    guardrail.add_word("HACK")

    assert "hack" in guardrail.words()
    assert not guardrail.validate("how to hack a website").safe
    assert guardrail.validate("hackathon tips").safe


def test_remove_word(guardrail):
    guardrail.remove_word("Evil")

    assert guardrail.validate("evil code").safe
    assert not guardrail.validate("kill the job").safe


def test_remove_unknown_word_is_noop(guardrail):
    guardrail.remove_word("missing")

    assert guardrail.words() == ["evil", "kill"]


def test_custom_word_set():
    guardrail = SafeInputGuardrail(["Spam"])

    assert not guardrail.validate("no spam please").safe
    assert guardrail.validate("kill the process").safe


def test_warning_logged_on_match(guardrail, caplog):
    with caplog.at_level("WARNING", logger="aicode.guardrail"):
        guardrail.validate("evil")

    assert "Sensitive word detected: evil" in caplog.text

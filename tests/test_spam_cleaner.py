"""Tests for the repetition normalizer."""

import pytest

from voicegate.schemas.cleaning import CleanerOptions
from voicegate.services.spam_cleaner import (
    PIPELINE,
    CleaningState,
    SpamCleaner,
    collapse_char_runs,
    collapse_phrase_runs,
    collapse_word_runs,
    is_url,
    quick_clean,
    strip_urls,
    truncate,
)


@pytest.fixture
def cleaner() -> SpamCleaner:
    return SpamCleaner()


def test_char_then_word_runs_collapse(cleaner: SpamCleaner) -> None:
    result = cleaner.clean("aaaa hello hello hello world")

    assert result.cleaned == "aa hello world"
    assert result.was_spam is True
    assert result.repetitions_found == 4
    assert result.pattern == "a"
    assert result.reduction_percentage == 50


def test_embedded_url_is_removed_without_flagging_spam(cleaner: SpamCleaner) -> None:
    result = cleaner.clean("check this out www.example.com now")

    assert result.cleaned == "check this out now"
    assert result.was_spam is False
    assert result.repetitions_found == 0
    assert result.pattern is None
    assert result.reduction_percentage == 47


@pytest.mark.parametrize(
    "text",
    ["https://example.com", "  https://example.com  ", "www.example.com", "example.com/path?x=1"],
)
def test_bare_url_short_circuits_to_empty(cleaner: SpamCleaner, text: str) -> None:
    result = cleaner.clean(text)

    assert result.cleaned == ""
    assert result.was_spam is False
    assert result.original == text


def test_empty_and_blank_input(cleaner: SpamCleaner) -> None:
    empty = cleaner.clean("")
    blank = cleaner.clean("   ")

    assert empty.cleaned == "" and empty.reduction_percentage == 0
    assert blank.cleaned == "" and blank.was_spam is False
    assert blank.reduction_percentage == 100
    assert cleaner.clean(None).cleaned == ""


def test_char_runs_collapse_to_two(cleaner: SpamCleaner) -> None:
    result = cleaner.clean("wowwww!!!!!")

    assert result.cleaned == "woww!!"
    assert result.repetitions_found == 5
    assert result.pattern == "!"


def test_every_triple_run_collapses_once_one_qualifies() -> None:
    cleaner = SpamCleaner(CleanerOptions(min_repetitions=5))

    result = cleaner.clean("cooool!!!!!")

    assert result.cleaned == "cool!!"
    assert result.was_spam is True
    assert result.repetitions_found == 5


def test_char_runs_below_threshold_are_kept() -> None:
    cleaner = SpamCleaner(CleanerOptions(min_repetitions=5))

    result = cleaner.clean("cooool")

    assert result.cleaned == "cooool"
    assert result.was_spam is False


def test_word_runs_case_insensitive_by_default(cleaner: SpamCleaner) -> None:
    assert cleaner.clean("no no no no").cleaned == "no"
    assert cleaner.clean("Hi hi HI there").cleaned == "Hi there"


def test_word_runs_case_sensitive() -> None:
    cleaner = SpamCleaner(CleanerOptions(case_sensitive=True))

    result = cleaner.clean("Hi hi HI there")

    assert result.cleaned == "Hi hi HI there"
    assert result.was_spam is False


def test_short_word_runs_are_preserved(cleaner: SpamCleaner) -> None:
    result = cleaner.clean("go go stop")

    assert result.cleaned == "go go stop"
    assert result.was_spam is False


def test_phrase_run_collapses(cleaner: SpamCleaner) -> None:
    result = cleaner.clean("buy now buy now buy now please")

    assert result.cleaned == "buy now please"
    assert result.was_spam is True
    assert result.repetitions_found == 3
    assert result.pattern == "buy now"


def test_only_one_phrase_run_collapses_per_call(cleaner: SpamCleaner) -> None:
    text = "la di la di la di x yo ho yo ho yo ho"

    first = cleaner.clean(text)
    second = cleaner.clean(first.cleaned)

    assert first.cleaned == "la di x yo ho yo ho yo ho"
    assert second.cleaned == "la di x yo ho"


def test_truncation_appends_ellipsis() -> None:
    cleaner = SpamCleaner(CleanerOptions(max_length=20))

    result = cleaner.clean("abcdefghij klmnopqrst uvwxyz")

    assert result.cleaned == "abcdefghij klmnop..."
    assert len(result.cleaned) == 20


@pytest.mark.parametrize(
    "text",
    ["hello there friend", "go go stop", "cool!! wow", "a b a b"],
)
def test_clean_is_idempotent_below_threshold(cleaner: SpamCleaner, text: str) -> None:
    once = cleaner.clean(text).cleaned

    assert cleaner.clean(once).cleaned == once


def test_clean_batch(cleaner: SpamCleaner) -> None:
    results = cleaner.clean_batch(["no no no", "fine"])

    assert [r.cleaned for r in results] == ["no", "fine"]
    assert [r.was_spam for r in results] == [True, False]


def test_update_options_merges(cleaner: SpamCleaner) -> None:
    options = cleaner.update_options(min_repetitions=2)

    assert options.min_repetitions == 2
    assert options.max_length == 200
    assert cleaner.clean("go go stop").cleaned == "go stop"


def test_quick_clean() -> None:
    assert quick_clean("https://example.com") == ""
    assert quick_clean("no no no") == "no"
    assert quick_clean(5) == 5


@pytest.mark.parametrize(
    "text, expected",
    [
        ("https://example.com", True),
        ("www.example.com", True),
        ("example.com/path?x=1", True),
        ("hello world", False),
        ("check www.example.com", False),
        ("", False),
        (None, False),
    ],
)
def test_is_url(text, expected) -> None:
    assert is_url(text) is expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("follow #mychannel now", "follow now"),
        ("see twitch.tv/foo ok", "see ok"),
        ("hi :bot.example ok", "hi ok"),
        ("go to https://x.io/a?b=1   please", "go to please"),
    ],
)
def test_strip_urls_pass(text: str, expected: str) -> None:
    state = strip_urls(CleaningState(text=text), CleanerOptions())

    assert state.text == expected
    assert state.was_spam is False


def test_passes_are_independent_functions() -> None:
    options = CleanerOptions()

    chars = collapse_char_runs(CleaningState(text="zzzz"), options)
    phrases = collapse_phrase_runs(CleaningState(text="a b a b a b"), options)
    words = collapse_word_runs(CleaningState(text="x x x"), options)
    cut = truncate(CleaningState(text="y" * 250), options)

    assert chars.text == "zz" and chars.pattern == "z"
    assert phrases.text == "a b" and phrases.repetitions_found == 3
    assert words.text == "x" and words.pattern == "x"
    assert len(cut.text) == 200 and cut.text.endswith("...")
    assert PIPELINE[0] is strip_urls and PIPELINE[-1] is truncate


def test_first_pattern_wins_and_max_repetitions_kept() -> None:
    state = CleaningState(text="start").merge("a", 3, "first").merge("b", 7, "second")

    assert state.pattern == "first"
    assert state.repetitions_found == 7
    assert state.was_spam is True

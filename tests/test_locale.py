from __future__ import annotations

from fluxfeed.errors import DuplicateFeedError, EmptyFeedError, ServerFailureError
from fluxfeed.locale import Translator, format_message


def test_translate_known_language():
    translator = Translator()

    message = ServerFailureError(404).localize(translator, "de_DE")

    assert message == "Konnte Abonnement nicht abrufen (code=404)"


def test_unknown_language_falls_back_to_english():
    translator = Translator()

    assert translator.get_language("xx_XX") == "en_US"
    assert EmptyFeedError().localize(translator, "xx_XX") == "This feed is empty"


def test_english_message_is_the_template():
    error = DuplicateFeedError("https://example.com/feed")

    assert str(error) == "This feed already exists (https://example.com/feed)"
    assert error.localize(Translator(), "en_US") == str(error)


def test_missing_translation_uses_english_template():
    translator = Translator({"fr_FR": {}})

    assert translator.translate("fr_FR", "Feed %s not found", "f1") == "Feed f1 not found"
    assert translator.languages() == ["en_US", "fr_FR"]


def test_format_message_tolerates_bad_arguments():
    assert format_message("Status %d", ["nope"]) == "Status %d"
    assert format_message("No args", []) == "No args"

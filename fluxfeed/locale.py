"""Message catalogs used to localize feed error messages."""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional, Sequence

from .config import default_language

logger = logging.getLogger(__name__)

# Templates are keyed by their English text; English needs no catalog.
_CATALOGS: Dict[str, Dict[str, str]] = {
    "fr_FR": {
        "Unable to execute request: %s": "Impossible d'exécuter la requête : %s",
        "Unable to fetch feed (Status Code = %d)": (
            "Impossible de récupérer ce flux (code=%d)"
        ),
        "This feed already exists (%s)": "Ce flux existe déjà (%s)",
        "Feed %s not found": "Impossible de trouver ce flux (%s)",
        "Unable to normalize encoding: %s": "Impossible de normaliser l'encodage : %s",
        "Category not found for this user": (
            "Cette catégorie n'existe pas pour cet utilisateur"
        ),
        "This feed is empty": "Ce flux est vide",
        "Resource not found (404), this feed doesn't exists anymore, check the feed URL": (
            "Page introuvable (404), ce flux n'existe plus, vérifiez l'adresse du flux"
        ),
        "Unable to parse feed: %s": "Impossible d'analyser ce flux : %s",
    },
    "de_DE": {
        "Unable to execute request: %s": "Fehler beim Ausführen der Anfrage: %s",
        "Unable to fetch feed (Status Code = %d)": (
            "Konnte Abonnement nicht abrufen (code=%d)"
        ),
        "This feed already exists (%s)": "Diese Abonnement existiert bereits (%s)",
        "Feed %s not found": "Abonnement nicht gefunden (%s)",
        "Unable to normalize encoding: %s": "Konnte Kodierung nicht normalisieren: %s",
        "Category not found for this user": "Diese Kategorie existiert nicht für diesen Benutzer",
        "This feed is empty": "Dieses Abonnement ist leer",
        "Resource not found (404), this feed doesn't exists anymore, check the feed URL": (
            "Ressource nicht gefunden (404), dieses Abonnement existiert nicht mehr, "
            "überprüfen Sie die Abonnement-URL"
        ),
        "Unable to parse feed: %s": "Konnte Abonnement nicht analysieren: %s",
    },
}


def format_message(template: str, args: Sequence[object]) -> str:
    if not args:
        return template
    try:
        return template % tuple(args)
    except (TypeError, ValueError):
        logger.warning("Unable to format message template %r with %r", template, args)
        return template


class Translator:
    """Translate message templates for a language, falling back to English."""

    def __init__(self, catalogs: Optional[Mapping[str, Mapping[str, str]]] = None):
        self._catalogs = dict(_CATALOGS if catalogs is None else catalogs)

    def languages(self) -> list[str]:
        return ["en_US", *sorted(self._catalogs)]

    def get_language(self, language: Optional[str]) -> str:
        if language and (language == "en_US" or language in self._catalogs):
            return language
        return default_language()

    def translate(self, language: Optional[str], template: str, *args: object) -> str:
        catalog = self._catalogs.get(self.get_language(language), {})
        return format_message(catalog.get(template, template), args)

"""Scheme handlers used by ``confgetter.client.Client``."""

from __future__ import annotations

from confgetter.getters.base import ClientMode, Getter, split_forced_getter
from confgetter.getters.configserver import ConfigServerGetter
from confgetter.getters.file import FileGetter
from confgetter.getters.http import HttpGetter

__all__ = [
    "ClientMode",
    "ConfigServerGetter",
    "FileGetter",
    "Getter",
    "HttpGetter",
    "split_forced_getter",
]

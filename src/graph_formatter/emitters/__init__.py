"""Emitters turning layout results into output text."""

from graph_formatter.emitters.base import Emitter
from graph_formatter.emitters.json_emitter import JsonEmitter

__all__ = ["Emitter", "JsonEmitter"]

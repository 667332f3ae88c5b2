"""Strip platform emote tags such as ``[emote:123:wave]`` from chat text."""

from __future__ import annotations

import re
from typing import Any

_EMOTE_TAG = re.compile(r"\[emote:\d+:[^\]]+\]")


def remove_emotes(message: Any) -> str:
    if not isinstance(message, str) or not message:
        return ""
    return _EMOTE_TAG.sub("", message).strip()


__all__ = ["remove_emotes"]

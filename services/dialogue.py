"""Two-speaker dialogue helpers.

``split_two_speakers`` is the local fallback used when the formatter gives
nothing usable. It is deterministic: whitespace is collapsed to single
spaces, the text is cut into sentence-like segments (a run of characters up
to and including any trailing ``.``, ``!`` or ``?``), blank segments are
dropped, and segments are labelled ``Speaker 1`` / ``Speaker 2`` in turn.

    >>> split_two_speakers("Hi there. How are you? Fine!")
    'Speaker 1: Hi there.\\nSpeaker 2: How are you?\\nSpeaker 1: Fine!'

Empty input gives an empty string; a single sentence gives one
``Speaker 1:`` line.
"""

import re

SPEAKERS = ("Speaker 1", "Speaker 2")

_WHITESPACE = re.compile(r"\s+")
_SEGMENT = re.compile(r"[^.!?\n]+[.!?]*")
_DIALOGUE_LINE = re.compile(r"^Speaker (1|2):", re.MULTILINE)


def looks_like_dialogue(text: str) -> bool:
    return bool(text) and bool(_DIALOGUE_LINE.search(text))


def split_two_speakers(text: str) -> str:
    collapsed = _WHITESPACE.sub(" ", text or "")
    segments = [s.strip() for s in _SEGMENT.findall(collapsed)]
    segments = [s for s in segments if s]
    return "\n".join(f"{SPEAKERS[i % 2]}: {segment}" for i, segment in enumerate(segments))

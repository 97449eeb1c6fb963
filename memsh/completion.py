"""
Tab completion with cycling over ambiguous matches.

The engine is a small state machine. It is Idle until a request has more
than one match, then Proposing: it remembers the candidates, the active
index and the exact input it produced. A further request with that same
input moves to the next (or previous) candidate. Any other request, or a
call to ``cancel()``, drops back to Idle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from memsh import paths
from memsh.dispatcher import CWD_PREFIX
from memsh.exceptions import MemshError
from memsh.tokenizer import quote_arg_if_needed, tokenize
from memsh.types import CompletionKind

if TYPE_CHECKING:
    from memsh.dispatcher import Dispatcher
    from memsh.vfs import VirtualFileSystem

logger = logging.getLogger(__name__)


class CompletionState(str, Enum):
    IDLE = "idle"
    PROPOSING = "proposing"


@dataclass
class Candidate:
    """One completion candidate."""

    name: str
    is_folder: bool = False

    @property
    def display(self) -> str:
        return self.name + (paths.SEPARATOR if self.is_folder else "")


@dataclass
class CompletionOutcome:
    """What a completion request produced."""

    text: str
    candidates: list[str] = field(default_factory=list)
    index: int | None = None
    no_match: bool = False
    kind: CompletionKind | None = None

    @property
    def ambiguous(self) -> bool:
        return len(self.candidates) > 1


@dataclass
class CurrentWord:
    """The word under the cursor and its raw span in the input."""

    value: str
    raw_start: int
    raw_end: int
    quote_char: str | None
    position: int


@dataclass
class _Proposing:
    kind: CompletionKind
    candidates: list[Candidate]
    index: int
    last_input: str
    before_word: str = ""
    after_word: str = ""
    dir_part: str = ""
    quote_char: str | None = None


def current_word(text: str) -> CurrentWord:
    """
    Find the word being completed: the last token, or an empty word when the
    input ends in whitespace.

    ``position`` is the zero-based index of that word among all words.
    """
    result = tokenize(text)
    tokens = result.tokens

    if result.ends_with_space or not tokens:
        return CurrentWord(
            value="",
            raw_start=len(text),
            raw_end=len(text),
            quote_char=None,
            position=len(tokens),
        )

    last = tokens[-1]
    return CurrentWord(
        value=last.value,
        raw_start=last.raw_start,
        raw_end=last.raw_end,
        quote_char=last.quote_char,
        position=len(tokens) - 1,
    )


class CompletionEngine:
    """
    CompletionEngine - command and path completion for one shell session.

    Command candidates come from the dispatcher (built-ins plus programs on
    PATH); path candidates come from listing the filesystem.
    """

    def __init__(self, vfs: "VirtualFileSystem", dispatcher: "Dispatcher"):
        self.vfs = vfs
        self.dispatcher = dispatcher
        self._session: _Proposing | None = None

    @property
    def state(self) -> CompletionState:
        return CompletionState.PROPOSING if self._session else CompletionState.IDLE

    def cancel(self) -> None:
        """Discard the session (any keystroke other than a completion request)."""
        self._session = None

    def complete(self, text: str, reverse: bool = False) -> CompletionOutcome:
        """
        Handle one completion request.

        Args:
            text: Full current input line.
            reverse: Cycle backwards through an open session.

        Returns:
            CompletionOutcome with the replacement input.
        """
        cycled = self._cycle(text, -1 if reverse else 1)
        if cycled is not None:
            return cycled

        self._session = None
        word = current_word(text)

        if word.position == 0:
            if word.value.startswith(CWD_PREFIX):
                return self._complete_path(text, word)
            return self._complete_command(text, word)

        return self._complete_path(text, word)

    # =========================================================================
    # Transitions
    # =========================================================================

    def _cycle(self, text: str, direction: int) -> CompletionOutcome | None:
        session = self._session
        if session is None or len(session.candidates) <= 1 or text != session.last_input:
            return None

        size = len(session.candidates)
        session.index = (session.index + direction) % size
        session.last_input = self._render(session, session.candidates[session.index])
        return self._proposal(session)

    def _complete_command(self, text: str, word: CurrentWord) -> CompletionOutcome:
        names = set(self.dispatcher.command_names())
        names.update(self.dispatcher.path_script_commands())
        matches = [Candidate(name) for name in sorted(names) if name.startswith(word.value)]

        if not matches:
            return CompletionOutcome(text=text, no_match=True, kind=CompletionKind.COMMAND)

        if len(matches) == 1:
            return CompletionOutcome(
                text=matches[0].name + " ",
                candidates=[matches[0].display],
                index=0,
                kind=CompletionKind.COMMAND,
            )

        session = _Proposing(
            kind=CompletionKind.COMMAND, candidates=matches, index=0, last_input=""
        )
        return self._open(session)

    def _complete_path(self, text: str, word: CurrentWord) -> CompletionOutcome:
        cut = word.value.rfind(paths.SEPARATOR)
        dir_part = word.value[: cut + 1] if cut != -1 else ""
        name_part = word.value[cut + 1:] if cut != -1 else word.value
        list_target = (dir_part[:-1] or paths.SEPARATOR) if dir_part else "."

        try:
            listing = self.vfs.list(list_target)
        except MemshError as e:
            logger.debug("Path completion could not list %r: %s", list_target, e)
            return CompletionOutcome(text=text, no_match=True, kind=CompletionKind.PATH)

        candidates = [Candidate(name, is_folder=True) for name in listing.folders]
        candidates += [Candidate(name) for name in listing.files]
        matches = sorted(
            (c for c in candidates if c.name.startswith(name_part)),
            key=lambda c: c.name,
        )

        if not matches:
            return CompletionOutcome(text=text, no_match=True, kind=CompletionKind.PATH)

        session = _Proposing(
            kind=CompletionKind.PATH,
            candidates=matches,
            index=0,
            last_input="",
            before_word=text[: word.raw_start],
            after_word=text[word.raw_end:],
            dir_part=dir_part,
            quote_char=word.quote_char,
        )

        if len(matches) == 1:
            return CompletionOutcome(
                text=self._render(session, matches[0]),
                candidates=[matches[0].display],
                index=0,
                kind=CompletionKind.PATH,
            )

        return self._open(session)

    def _open(self, session: _Proposing) -> CompletionOutcome:
        session.last_input = self._render(session, session.candidates[session.index])
        self._session = session
        return self._proposal(session)

    # =========================================================================
    # Rendering
    # =========================================================================

    def _render(self, session: _Proposing, candidate: Candidate) -> str:
        if session.kind is CompletionKind.COMMAND:
            return candidate.name + " "

        value = session.dir_part + candidate.display
        raw = quote_arg_if_needed(value, session.quote_char or '"')
        return session.before_word + raw + session.after_word

    def _proposal(self, session: _Proposing) -> CompletionOutcome:
        return CompletionOutcome(
            text=session.last_input,
            candidates=[c.display for c in session.candidates],
            index=session.index,
            kind=session.kind,
        )

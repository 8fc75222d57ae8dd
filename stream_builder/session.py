from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import (
    AsyncIterable, Callable, Dict, List, Mapping, Optional, Tuple,
)

from .extractor import extract_blocks
from .grouper import first_path, group
from .registry import language_for_path
from .synthesizer import (
    ERROR_FILE, VirtualFile, complete_files, error_files, root_placeholder, synthesize,
)

IDLE = "idle"
STREAMING = "streaming"
COMPLETED = "completed"
ERRORED = "errored"

LogFn = Callable[[str], None]


class SessionStateError(RuntimeError):
    """Controller called in a state that does not allow the operation."""


@dataclass
class StreamSession:
    """Mutable state of one generation request. Owned by the caller, mutated by StreamController."""
    prompt: str = ""
    raw_buffer: str = ""
    status: str = IDLE                 # idle | streaming | completed | errored
    files: List[VirtualFile] = field(default_factory=list)
    selected_path: Optional[str] = None
    ordinals: Dict[int, int] = field(default_factory=dict)   # block start -> Generated<N>
    error: Optional[str] = None

    def reset(self, prompt: str = "") -> None:
        self.prompt = prompt
        self.raw_buffer = ""
        self.status = IDLE
        self.files = []
        self.selected_path = None
        self.ordinals = {}
        self.error = None


@dataclass(frozen=True)
class Snapshot:
    files: Tuple[VirtualFile, ...]
    directories_ordered: Tuple[str, ...]
    files_by_directory: Mapping[str, Tuple[VirtualFile, ...]]
    selected_path: Optional[str]
    session_status: str

    def file(self, path: str) -> Optional[VirtualFile]:
        for f in self.files:
            if f.path == path:
                return f
        return None

    @property
    def selected_file(self) -> Optional[VirtualFile]:
        return self.file(self.selected_path) if self.selected_path else None

    @property
    def language_for_selected(self) -> str:
        return language_for_path(self.selected_path or "")

    @property
    def is_streaming(self) -> bool:
        return self.session_status == STREAMING


class CancelToken:
    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class StreamController:
    """
    Drives one StreamSession through idle -> streaming -> completed | errored.

    Every state change ends in a published Snapshot (on_snapshot). Parsing runs
    synchronously between chunk reads; only the transport can fail, and a
    failure turns the file set into a single error.txt.
    """

    def __init__(
        self,
        session: Optional[StreamSession] = None,
        *,
        on_snapshot: Optional[Callable[[Snapshot], None]] = None,
        on_complete: Optional[Callable[[Snapshot], None]] = None,
        token: Optional[CancelToken] = None,
        logger: LogFn | None = None,
    ) -> None:
        self.session = session or StreamSession()
        self.on_snapshot = on_snapshot
        self.on_complete = on_complete
        self.token = token or CancelToken()
        self._log = logger or (lambda _: None)

    # ---------------- transitions ----------------

    def start(self, prompt: str = "") -> Snapshot:
        s = self.session
        s.reset(prompt)
        s.status = STREAMING
        s.files = [root_placeholder("")]
        s.selected_path = s.files[0].path
        self._log(f"[session] start prompt_chars={len(prompt)}")
        return self._publish()

    def feed(self, chunk: str) -> Snapshot:
        s = self.session
        if s.status != STREAMING:
            raise SessionStateError(f"cannot feed a session in state {s.status!r}")
        if not chunk:
            return self.snapshot()

        s.raw_buffer += chunk
        blocks = list(extract_blocks(s.raw_buffer))
        for b in blocks:
            if b.start not in s.ordinals:
                s.ordinals[b.start] = len(s.ordinals) + 1
        s.files = synthesize(
            blocks, s.files, buffer=s.raw_buffer, ordinals=s.ordinals, logger=self._log,
        )
        self._reselect()
        return self._publish()

    def finish(self) -> Snapshot:
        s = self.session
        if s.status != STREAMING:
            raise SessionStateError(f"cannot finish a session in state {s.status!r}")
        s.files = complete_files(s.files)
        s.status = COMPLETED
        self._reselect()
        self._log(f"[session] completed files={len(s.files)} buffer_chars={len(s.raw_buffer)}")
        snap = self._publish()
        if self.on_complete and not self.token.cancelled:
            self.on_complete(snap)
        return snap

    def fail(self, message: str) -> Snapshot:
        s = self.session
        if s.status != STREAMING:
            raise SessionStateError(f"cannot fail a session in state {s.status!r}")
        s.files = error_files(message)
        s.selected_path = ERROR_FILE
        s.status = ERRORED
        s.error = message
        self._log(f"[session] errored: {message}")
        return self._publish()

    def interrupt(self, message: str = "Generation interrupted") -> Snapshot:
        """
        Close out a reader that stopped without finishing (e.g. the UI script was
        torn down mid-stream). Cancels the token so nothing more is published,
        then fails the session. No-op once the session is terminal.
        """
        if self.session.status != STREAMING:
            return self.snapshot()
        self.token.cancel()
        return self.fail(message)

    def select(self, path: str) -> Snapshot:
        if not any(f.path == path for f in self.session.files):
            raise ValueError(f"No such file in session: {path}")
        self.session.selected_path = path
        return self._publish()

    # ---------------- read loop ----------------

    async def run(self, source: AsyncIterable[str], prompt: str = "") -> Snapshot:
        """
        Consume `source` chunk by chunk. End of input completes the session;
        any exception raised while reading fails it.
        """
        self.start(prompt)
        it = source.__aiter__()
        try:
            while True:
                try:
                    chunk = await it.__anext__()
                except StopAsyncIteration:
                    break
                except Exception as e:
                    if self.token.cancelled:
                        break
                    self._log(f"[session] transport failure: {type(e).__name__}: {e}")
                    return self.fail(str(e) or type(e).__name__)
                if self.token.cancelled:
                    self._log("[session] cancelled; dropping remaining chunks")
                    return self.snapshot()
                self.feed(chunk)

            if self.token.cancelled:
                return self.snapshot()
            return self.finish()
        finally:
            aclose = getattr(it, "aclose", None)
            if aclose is not None:
                await aclose()

    # ---------------- views ----------------

    def snapshot(self) -> Snapshot:
        s = self.session
        directories, by_dir = group(s.files)
        return Snapshot(
            files=tuple(s.files),
            directories_ordered=tuple(directories),
            files_by_directory=MappingProxyType({d: tuple(fs) for d, fs in by_dir.items()}),
            selected_path=s.selected_path,
            session_status=s.status,
        )

    def _reselect(self) -> None:
        s = self.session
        if s.selected_path and any(f.path == s.selected_path for f in s.files):
            return
        directories, by_dir = group(s.files)
        s.selected_path = first_path(directories, by_dir)

    def _publish(self) -> Snapshot:
        snap = self.snapshot()
        if self.on_snapshot and not self.token.cancelled:
            self.on_snapshot(snap)
        return snap


class SessionSlot:
    """
    One place in the UI that shows a generation. Opening a new controller
    cancels the previous one, so its reader loop stops publishing.
    """

    def __init__(self) -> None:
        self.controller: Optional[StreamController] = None

    def open(self, **controller_kwargs) -> StreamController:
        self.cancel()
        controller_kwargs.setdefault("token", CancelToken())
        self.controller = StreamController(**controller_kwargs)
        return self.controller

    def cancel(self) -> None:
        if self.controller is not None:
            self.controller.token.cancel()

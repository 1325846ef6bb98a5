"""
Turn event logger for thinkturn.

Logs the life of each turn (initial response, continuations, guard exits,
content recovery, completion) to a JSONL file for debugging and analysis.
"""

import datetime as _datetime
import json as _json
import logging as _logging
import os as _os
import pathlib as _pathlib
import tempfile as _tempfile
import threading as _threading
import typing as _typing

import thinkturn.config.types as config_types

_logger = _logging.getLogger(__name__)


class TurnLogger:
    """
    Logs turn events to a JSONL file.

    Each line in the file is a JSON object representing an event:
    - logger_start: File metadata
    - turn_start: Session, turn and model ids, message count, complexity
    - response: One model response (initial or continuation)
    - continuation: A continuation was merged into the answer
    - guard_exceeded: The continuation loop stopped on a guard
    - recovery: Truncated JSON or a code fence was repaired
    - turn_end: Final metrics of the turn
    - logger_end: Total event count

    Response text is only written when ``include_text`` is set; otherwise
    events carry text lengths.

    Usage:
        logger = TurnLogger(log_dir="/tmp/thinkturn-logs")
        logger.log_turn_start(turn_id="...", session_id="s1", model_id="gpt-5")
        ...
        logger.close()
    """

    def __init__(
        self,
        *,
        log_dir: _pathlib.Path | str | None = None,
        log_file: _pathlib.Path | str | None = None,
        private_mode: bool = True,
        include_text: bool = False,
        enabled: bool = True,
    ) -> None:
        """
        Initialize the turn logger.

        Args:
            log_dir: Directory for log files (default: {tempdir}/thinkturn-logs).
            log_file: Explicit log file path (overrides log_dir + auto name).
            private_mode: If True, set log directory to drwx------ (0o700).
            include_text: Write full response text into events.
            enabled: Whether logging is enabled.
        """
        self._enabled = enabled
        self._include_text = include_text
        self._file: _typing.TextIO | None = None
        self._file_path: _pathlib.Path | None = None
        self._event_count = 0
        self._lock = _threading.Lock()

        if not enabled:
            return

        if log_file:
            self._file_path = _pathlib.Path(log_file)
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
        else:
            base_dir = (
                _pathlib.Path(log_dir)
                if log_dir
                else _pathlib.Path(_tempfile.gettempdir()) / "thinkturn-logs"
            )
            base_dir.mkdir(parents=True, exist_ok=True)

            if private_mode:
                _os.chmod(base_dir, 0o700)

            stamp = _datetime.datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            self._file_path = base_dir / f"thinkturn_{stamp}.jsonl"

        # Held as instance state, closed in close()
        self._file = open(self._file_path, "a", encoding="utf-8")  # noqa: SIM115
        self._write_event("logger_start", {"pid": _os.getpid()})

    @classmethod
    def from_config(
        cls,
        config: config_types.TurnLoggingConfig,
        log_dir: _pathlib.Path | str | None = None,
    ) -> "TurnLogger":
        """
        Build a logger from a TurnLoggingConfig.

        Args:
            config: Logging section of the settings.
            log_dir: Directory to use when ``config.dir`` is unset.
        """
        return cls(
            log_dir=config.dir or log_dir,
            private_mode=config.private,
            include_text=config.include_text,
            enabled=config.enabled,
        )

    def _write_event(
        self,
        event_type: str,
        data: dict[str, _typing.Any],
    ) -> None:
        """Write an event to the log file."""
        if not self._enabled or not self._file:
            return

        with self._lock:
            self._event_count += 1
            event = {
                "timestamp": _datetime.datetime.now().isoformat(),
                "event_number": self._event_count,
                "event_type": event_type,
                **data,
            }
            try:
                self._file.write(_json.dumps(event, default=str) + "\n")
                self._file.flush()
            except OSError as e:
                # Logging must never break a turn
                _logger.debug("Failed to write turn event: %s", e)

    def _text_fields(self, text: str) -> dict[str, _typing.Any]:
        fields: dict[str, _typing.Any] = {"text_length": len(text)}
        if self._include_text:
            fields["text"] = text
        return fields

    def log_turn_start(
        self,
        *,
        turn_id: str,
        session_id: str,
        model_id: str | None,
        message_count: int,
        complexity: str | None = None,
    ) -> None:
        """Log the start of a turn."""
        self._write_event(
            "turn_start",
            {
                "turn_id": turn_id,
                "session_id": session_id,
                "model_id": model_id,
                "message_count": message_count,
                "complexity": complexity,
            },
        )

    def log_response(
        self,
        *,
        turn_id: str,
        index: int,
        text: str,
        finish_reason: str | None,
        output_tokens: int | None = None,
    ) -> None:
        """Log one model response; index 0 is the initial response."""
        self._write_event(
            "response",
            {
                "turn_id": turn_id,
                "index": index,
                "finish_reason": finish_reason,
                "output_tokens": output_tokens,
                **self._text_fields(text),
            },
        )

    def log_continuation(
        self,
        *,
        turn_id: str,
        continuation_count: int,
        progress_chars: int,
        overlap_chars: int,
    ) -> None:
        """Log a continuation merged into the accumulated answer."""
        self._write_event(
            "continuation",
            {
                "turn_id": turn_id,
                "continuation_count": continuation_count,
                "progress_chars": progress_chars,
                "overlap_chars": overlap_chars,
            },
        )

    def log_guard_exceeded(
        self,
        *,
        turn_id: str,
        guard: str,
        continuation_count: int,
        elapsed_seconds: float,
    ) -> None:
        """Log the continuation loop stopping on a guard."""
        self._write_event(
            "guard_exceeded",
            {
                "turn_id": turn_id,
                "guard": guard,
                "continuation_count": continuation_count,
                "elapsed_seconds": round(elapsed_seconds, 3),
            },
        )

    def log_recovery(
        self,
        *,
        turn_id: str,
        kind: str,
        status: str,
        description: str | None,
    ) -> None:
        """Log a content recovery attempt (kind is "json" or "code_block")."""
        self._write_event(
            "recovery",
            {
                "turn_id": turn_id,
                "kind": kind,
                "status": status,
                "description": description,
            },
        )

    def log_turn_end(
        self,
        *,
        turn_id: str,
        was_truncated: bool,
        metrics: dict[str, _typing.Any],
        thinking_length: int | None = None,
    ) -> None:
        """Log turn completion with its metrics snapshot."""
        self._write_event(
            "turn_end",
            {
                "turn_id": turn_id,
                "was_truncated": was_truncated,
                "metrics": metrics,
                "thinking_length": thinking_length,
            },
        )

    @property
    def file_path(self) -> _pathlib.Path | None:
        """Get the log file path."""
        return self._file_path

    @property
    def enabled(self) -> bool:
        """Check if logging is enabled."""
        return self._enabled

    @property
    def event_count(self) -> int:
        return self._event_count

    def close(self) -> None:
        """Close the log file."""
        if not self._enabled or not self._file:
            return

        self._write_event("logger_end", {"total_events": self._event_count})

        try:
            self._file.close()
        except OSError as e:
            _logger.debug("Failed to close turn log: %s", e)
        finally:
            self._file = None

    def __enter__(self) -> "TurnLogger":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: _typing.Any,
    ) -> None:
        self.close()

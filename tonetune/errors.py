from __future__ import annotations


class ToneTuneError(Exception):
    """Base error for the tonetune engine.

    Every error carries a human-readable message and a stable machine code.
    """

    code = "tonetune_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class InvalidParamsError(ToneTuneError):
    """Raised when a parameter payload, label or preset name is not accepted."""

    code = "invalid_params"


class DecodeError(ToneTuneError):
    """Raised when source bytes cannot be decoded into an audio buffer."""

    code = "decode_failed"


class RenderError(ToneTuneError):
    """Raised when the signal chain cannot be built or executed."""

    code = "render_failed"


class PlaybackError(ToneTuneError):
    """Raised when the playback transport cannot start."""

    code = "playback_failed"


class UploadError(ToneTuneError):
    """Raised when the upload collaborator fails to store a rendered file."""

    code = "upload_failed"

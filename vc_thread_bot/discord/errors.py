from __future__ import annotations


class LifecycleError(RuntimeError):
    """A platform call failed while driving a voice channel session.

    ``stage`` is a short human readable description of the step that failed; the
    original exception is chained as ``__cause__``.
    """

    def __init__(self, stage: str) -> None:
        super().__init__(stage)
        self.stage = stage

    def __str__(self) -> str:
        cause = self.__cause__
        if cause is None:
            return self.stage
        return f"{self.stage}: {cause!r}"

from __future__ import annotations


class FatalError(Exception):
    """Aborts a case immediately; no further assertions run."""

    def __init__(self, message: str, *, failures: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.failures = list(failures or [])

    def __str__(self) -> str:
        if not self.failures:
            return self.message
        earlier = "\n".join(f"  - {f}" for f in self.failures)
        return f"{self.message}\nearlier failures:\n{earlier}"


class CaseFailed(AssertionError):
    def __init__(self, failures: list[str]) -> None:
        self.failures = list(failures)
        super().__init__("\n".join(self.failures))

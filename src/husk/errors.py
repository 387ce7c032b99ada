"""
Husk errors.

Every error raised here aborts the build in progress: a malformed ring
topology cannot be repaired locally, so callers fix the ring sequence and
start over.
"""


class HuskError(Exception):
    """Base class for husk construction and export errors."""


class UnknownBranchLabel(HuskError):
    """A branch was entered before any spoke declared its label."""

    def __init__(self, label: str):
        super().__init__(f"Unknown branch label: {label}")
        self.label = label


class ConsumedBranchLabel(UnknownBranchLabel):
    """A branch label was used again after its branch was entered."""

    def __init__(self, label: str):
        HuskError.__init__(self, f"Branch label already consumed: {label}")
        self.label = label


class InvalidBranches(HuskError):
    """A face mixes branch labels, or branch edges do not form one loop."""


class InvalidRing(HuskError):
    """A ring has too few resolved points to stitch."""

    def __init__(self, ring_id: int, reason: str = ""):
        message = f"Invalid ring: {ring_id}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.ring_id = ring_id


class ExportError(HuskError):
    """Writing the binary container failed."""

"""StageGate: requirement-gated, multi-stage essay and thesis writing."""

__version__ = "0.1.0"

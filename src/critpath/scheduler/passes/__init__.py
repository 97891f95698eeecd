"""Forward and backward scheduling passes."""

from .backward_pass import BackwardPass, backward_candidate
from .forward_pass import ForwardPass, forward_candidate

__all__ = [
    "BackwardPass",
    "ForwardPass",
    "backward_candidate",
    "forward_candidate",
]

"""
Judge implementations.
"""

from .random_stub_judge import RandomStubJudge
from .scripted_judge import ScriptedJudge

__all__ = [
    "RandomStubJudge",
    "ScriptedJudge",
]

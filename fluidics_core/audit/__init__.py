from .report import SolveReport

__all__ = ["SolveReport"]

from diso.session.controller import AnalysisSession

__all__ = ["AnalysisSession"]

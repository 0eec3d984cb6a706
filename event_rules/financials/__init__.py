from .api import compute_financials, summarize_financials

__all__ = ["compute_financials", "summarize_financials"]

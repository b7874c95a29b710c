from pairlist.pipeline.manager import DEFAULT_REFRESH_INTERVAL_S, PairListManager

__all__ = ["DEFAULT_REFRESH_INTERVAL_S", "PairListManager"]

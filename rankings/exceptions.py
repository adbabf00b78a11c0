class RankingError(Exception):
    """Base class for ranking engine errors."""


class InvalidPeriodError(RankingError, ValueError):
    def __init__(self, token, valid_tokens=()):
        self.token = token
        self.valid_tokens = tuple(valid_tokens)
        msg = f"Invalid period: {token!r}"
        if self.valid_tokens:
            msg += ". Must be one of: " + ", ".join(self.valid_tokens)
        super().__init__(msg)


class InvalidLimitError(RankingError, ValueError):
    pass


class UnknownCompanyError(RankingError, LookupError):
    pass


class ScoreCalculationError(RankingError):
    """Store-level failure while aggregating scores; the whole run can be retried."""


class IncompleteScoreDataError(RankingError):
    def __init__(self, period_type, missing_company_ids):
        self.period_type = period_type
        self.missing_company_ids = sorted(missing_company_ids)
        super().__init__(
            f"Missing influence scores for period {period_type!r}: "
            f"{len(self.missing_company_ids)} companies ({self.missing_company_ids[:10]})"
        )


class DuplicateHistoryError(RankingError):
    """History was already recorded for this snapshot."""


class SnapshotNotFoundError(RankingError, LookupError):
    pass


class InvalidDateRangeError(RankingError, ValueError):
    """The resolved range would start after it ends."""

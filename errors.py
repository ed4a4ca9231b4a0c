from __future__ import annotations


class OfferFlowError(Exception):
    pass


class IncompleteDataError(OfferFlowError):
    """A parsed offer is missing the fields that identify the student or university."""

    def __init__(self, missing_fields: list[str]) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(
            "Incomplete offer data: missing "
            + ", ".join(self.missing_fields)
            + ". Check the document and re-upload or fill the fields in manually."
        )


class StoreIntegrityError(OfferFlowError):
    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Stored collection '{key}' is unreadable: {reason}")


class UpstreamExtractionError(OfferFlowError):
    pass

# geostats/errors.py


class GeoStatsError(Exception):
    """Base class for errors raised inside the stats pipeline."""


class ValidationError(GeoStatsError):
    """A required field is missing or malformed."""


class NotFoundError(GeoStatsError):
    """A referenced table or workbook does not exist."""


class UpstreamError(GeoStatsError):
    """The geocoder or the record store failed."""

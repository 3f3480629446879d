"""
Error taxonomy for the media resolution pipeline.

Every error carries the HTTP status it is reported with; main.py renders
them as the JSON error envelope at the request boundary.
"""


class MediaDownloadError(Exception):
    """Base class for all pipeline failures."""

    status_code = 500
    default_message = "Failed to process request"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# Classification / validation failures (400)

class UnsupportedPlatform(MediaDownloadError):
    status_code = 400
    default_message = "Unsupported URL. Please try a YouTube, Instagram, or Facebook URL."


class InvalidUrl(MediaDownloadError):
    status_code = 400
    default_message = "Invalid URL"


class InvalidVideoId(InvalidUrl):
    default_message = "Invalid YouTube URL"


# Extraction / network failures (500)

class MetadataUnavailable(MediaDownloadError):
    default_message = "Could not get video information"


class NoFormatAvailable(MediaDownloadError):
    default_message = "No suitable format found"


class MediaNotFound(MediaDownloadError):
    default_message = "Could not extract media URL"


class VideoUnavailable(MediaDownloadError):
    default_message = (
        "Video URL not found. The video might be private, require login, "
        "be age-restricted, have been deleted, or the link may be malformed."
    )


class UpstreamFetchFailed(MediaDownloadError):
    default_message = "Failed to fetch media from upstream"


class WriteFailed(MediaDownloadError):
    default_message = "Failed to write media to cache"

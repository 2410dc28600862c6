"""Exception types raised by the scan pipeline and the stream reconstructor."""


class MediaScoutError(Exception):
    """Base class for every error surfaced to the caller."""


class ScanError(MediaScoutError):
    """A scan request could not be served."""


class ContextNotFoundError(ScanError):
    def __init__(self, context_id):
        super().__init__(f"No browsing context with id {context_id!r}.")
        self.context_id = context_id


class ProtectedContextError(ScanError):
    def __init__(self, url):
        super().__init__(
            "Cannot scan this page: internal or privileged pages do not allow content scanning "
            f"({url or 'no url'})."
        )
        self.url = url


class InjectionError(ScanError):
    def __init__(self, message="Failed to scan page. The scanner could not be injected into this page."):
        super().__init__(message)


class ReconstructError(MediaScoutError):
    """A stream could not be rebuilt into a single payload."""


class ManifestFetchError(ReconstructError):
    def __init__(self, url, reason=None):
        msg = f"Failed to fetch manifest: {url}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)
        self.url = url


class NoStreamFoundError(ReconstructError):
    def __init__(self, url):
        super().__init__(f"No streams found in master playlist: {url}")
        self.url = url


class EmptyManifestError(ReconstructError):
    def __init__(self, url):
        super().__init__(f"No segments found in manifest: {url}")
        self.url = url


class SegmentFetchError(ReconstructError):
    def __init__(self, index, url=None, reason=None):
        msg = f"Failed to fetch segment {index}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)
        self.index = index
        self.url = url


class CancelledError(ReconstructError):
    def __init__(self):
        super().__init__("Download aborted")


class FileDownloadError(MediaScoutError):
    """A single-file media download failed."""

    def __init__(self, url, reason=None):
        msg = f"Failed to download: {url}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)
        self.url = url

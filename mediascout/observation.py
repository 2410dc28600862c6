import time

NETWORK = "network"
DOM = "dom"


class MediaObservation:
    """A discovered candidate media URL plus where and how it was found.

    ``size_bytes``, ``manifest_role``, ``duration_seconds`` and
    ``suggested_master_url`` are filled in by enrichment after merging.
    """

    def __init__(self, url, kind, origin, origin_detail=None, discovered_at=None):
        self.url = url
        self.kind = kind
        self.origin = origin
        self.origin_detail = origin_detail
        self.discovered_at = discovered_at
        self.size_bytes = None
        self.manifest_role = None
        self.duration_seconds = None
        self.suggested_master_url = None

    @classmethod
    def from_network(cls, url, kind, discovered_at=None):
        return cls(url, kind, NETWORK, discovered_at=discovered_at if discovered_at is not None else time.time())

    @classmethod
    def from_dom(cls, url, kind, origin_detail):
        return cls(url, kind, DOM, origin_detail=origin_detail)

    def copy(self):
        other = MediaObservation(self.url, self.kind, self.origin, self.origin_detail, self.discovered_at)
        other.size_bytes = self.size_bytes
        other.manifest_role = self.manifest_role
        other.duration_seconds = self.duration_seconds
        other.suggested_master_url = self.suggested_master_url
        return other

    def to_dict(self):
        """Serialise for JSON output, omitting enrichment fields that were never set."""
        data = {"url": self.url, "kind": self.kind, "origin": self.origin}
        if self.origin_detail is not None:
            data["origin_detail"] = self.origin_detail
        if self.discovered_at is not None:
            data["discovered_at"] = self.discovered_at
        for key in ("size_bytes", "manifest_role", "duration_seconds", "suggested_master_url"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    def __repr__(self):
        return f"MediaObservation({self.url!r}, kind={self.kind!r}, origin={self.origin!r})"


def merge_observations(dom_results, network_results):
    """Merge DOM results then network results, keeping the first of each URL."""
    seen = set()
    merged = []
    for item in list(dom_results) + list(network_results):
        if item.url in seen:
            continue
        seen.add(item.url)
        merged.append(item)
    return merged

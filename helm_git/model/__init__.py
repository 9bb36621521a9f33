from .uri import FetchDescriptor, parse_uri

__all__ = ["FetchDescriptor", "parse_uri"]

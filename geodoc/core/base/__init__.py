from geodoc.core.base.geodoc_base import GeoDoc, GeoDocMeta

__all__ = ["GeoDoc", "GeoDocMeta"]

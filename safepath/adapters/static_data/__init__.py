from .loader import RegionDataLoader, StaticRegionDataLoader, build_region_data

__all__ = ["RegionDataLoader", "StaticRegionDataLoader", "build_region_data"]

"""HTTP surface for GeoLink Access."""

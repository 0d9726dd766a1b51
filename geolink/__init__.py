"""GeoLink Access — onboarding and API credential issuance."""

__version__ = "0.1.0"

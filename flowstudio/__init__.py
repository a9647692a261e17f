"""Flow Studio: editing and deployment engine for onboarding flows."""

__version__ = "0.1.0"

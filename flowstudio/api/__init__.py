"""HTTP API for managing onboarding flows."""

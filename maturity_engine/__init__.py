"""Maturity Engine — maturity scoring and caching for security/privacy programs."""

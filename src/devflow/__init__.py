"""devflow - AI-assisted development productivity analysis."""

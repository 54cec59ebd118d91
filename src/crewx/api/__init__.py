"""HTTP API for CrewX."""

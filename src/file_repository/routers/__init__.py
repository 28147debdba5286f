"""HTTP routers for the file repository API."""

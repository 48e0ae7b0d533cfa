"""HTTP API and map page for the water quality snapshot."""

"""Database Before/After diff tool."""

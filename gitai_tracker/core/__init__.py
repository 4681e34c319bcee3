"""Edit attribution engine."""

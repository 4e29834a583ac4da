"""Http multipart upload server."""

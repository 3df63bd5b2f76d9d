"""In-memory fakes for the package service and the artifact store."""

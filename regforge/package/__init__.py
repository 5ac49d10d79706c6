"""Package side of a registration: locating a package and reading its manifest."""

"""pkgforge - multi-target package builds from a declared export map."""

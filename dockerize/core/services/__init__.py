"""
Services — detection, substitution, resolution and artifact writing.

Pure logic except for ``writer``, which is the only module that
touches the destination filesystem.
"""

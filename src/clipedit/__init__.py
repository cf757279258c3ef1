"""clipedit — timeline-based audio/video editing from the command line.

Each edit (rotate, crop, speed, merge, overlay, ...) builds an in-memory
multi-track composition from probed source tracks, plus render
instructions (layer transforms, crop filter, fading overlays) and audio
volume envelopes. The exporter renders that description to a file.
"""

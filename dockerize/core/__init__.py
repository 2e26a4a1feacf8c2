"""
Core — models, registry loading, detection, resolution and output.

No click, no printing. The CLI layer formats whatever comes out of here.
"""

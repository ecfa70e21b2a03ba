"""
VoxRefine - Dictation post-processing with pluggable cloud transcription.

This package provides:
- Speech-to-text over several REST vendors behind one provider interface
- Retrying HTTP core with size-proportional timeouts
- Filler-word removal and spoken punctuation commands
- LLM refinement styled for the app being dictated into
- Custom vocabulary hints and a searchable dictation history

Main entry point: python -m voxrefine
"""

__version__ = "1.0.0"

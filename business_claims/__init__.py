"""Business claims service package.

Having this file ensures the 'business_claims' directory is recognized as a
standard Python package during test discovery and editable installs.
"""

__all__: list[str] = []

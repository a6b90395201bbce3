"""Version information for github-exporter.

Single source of truth for version number.
"""

__version__ = "0.3.0"
__version_info__ = tuple(int(part) for part in __version__.split("."))

# Version history:
# 0.3.0 - Time-to-close histograms, configurable output dimensions
# 0.2.0 - Combined label selectors (labels_count)
# 0.1.0 - Initial release (label and state counts)

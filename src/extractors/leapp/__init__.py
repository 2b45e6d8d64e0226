"""LEAPP analyzer extractor (iLEAPP and ALEAPP).

Runs the external LEAPP tool in three phases:
- Discovery: the tool lists the artifact paths it understands
- Staging: matching files are copied out of the data source
- Analysis: the tool runs over the staged tree (or each archive) and its
  HTML report is registered with the case
"""

from .extractor import LeappExtractor
from .profiles import ALEAPP, ILEAPP, ToolProfile, candidate_table, get_profile

# Registry-compatible aliases (follows {Tool}Extractor convention)
ILeappExtractor = LeappExtractor

__all__ = [
    "LeappExtractor",
    "ILeappExtractor",
    "ToolProfile",
    "ILEAPP",
    "ALEAPP",
    "candidate_table",
    "get_profile",
]

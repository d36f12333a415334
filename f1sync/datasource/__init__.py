"""
Ergast data source for season champions and race winners.
"""

from f1sync.datasource.ergast import DriverInfo, ErgastSource, RaceInfo

__all__ = ["DriverInfo", "ErgastSource", "RaceInfo"]

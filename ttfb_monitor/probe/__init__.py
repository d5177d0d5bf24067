"""Page probe that measures TTFB and reports slow page loads."""

from ttfb_monitor.probe.probe import ClientProbe, PageContext, ProbeConfig
from ttfb_monitor.probe.signals import NavigationTiming, calculate_ttfb

__all__ = ['ClientProbe', 'PageContext', 'ProbeConfig', 'NavigationTiming', 'calculate_ttfb']

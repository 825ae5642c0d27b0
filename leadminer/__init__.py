"""
LeadMiner
Discovers business-opportunity leads in news and web content
"""

__version__ = "1.0.0"

"""BazaarTrack: Hypixel SkyBlock Bazaar price collector and analytics."""

__version__ = "0.1.0"

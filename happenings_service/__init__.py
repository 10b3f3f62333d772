"""Ticketmaster event discovery with favorites and reminder notifications."""

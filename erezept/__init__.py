"""E-Rezept app of the Testfachdienst.

Contains the prescription model, the service that guards its business
key, and the REST and STOMP transports built on top of it.
"""

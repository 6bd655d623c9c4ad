"""Domain layer: value objects, entities, interfaces and exceptions.

Nothing in this layer depends on transports or third-party libraries.
"""

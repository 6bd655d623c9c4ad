"""Infrastructure layer for the realtime connection layer.

The infrastructure layer contains implementations of domain interfaces:
- Transport implementations (WebSocket, socket.io)
- Frame codec (wire frames <-> typed payloads)
- Token providers
- The connection manager composing them

This layer depends on:
- Domain layer (interfaces and value objects)
- Application layer (connection policy services)
- External libraries (websockets, python-socketio)

But domain layer does NOT depend on infrastructure.
"""

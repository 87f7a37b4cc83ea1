"""Real-time infrastructure — connection registry + WebSocket endpoints.

Learn: Frames flow in two directions:
1. Client → WebSocket handler → service (chat messages are persisted first)
2. Service → RealtimeRegistry → open sockets (chat broadcast, notification push)

The registry is owned by the app (app.state.realtime), so services only
ever see the instance they are handed.
"""

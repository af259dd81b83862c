from listener_handler.state.listener_registry import ListenerRegistry

__all__ = ["ListenerRegistry"]

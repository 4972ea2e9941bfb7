"""Request and notification handlers bound by the event loop."""

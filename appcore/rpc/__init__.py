"""Request/response envelopes for dispatched resource methods."""

"""Request filter chain and the filters it is built from."""

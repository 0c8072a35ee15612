"""
appcore test suite.

Tests are organized by concern:
- test_composer.py / test_strategies.py: persistence configuration composition
- test_filters.py: request filter chain order and behavior
- test_interception.py: matchers, weaving and the standard interceptors
- test_lifecycle.py: create_app, dispatch and shutdown
- test_tenants.py: tenant resolution and routing
"""

"""API test harness for the Toolshop REST service.

Login, bearer-token handling and the fixtures that hand authenticated
Playwright request contexts to the test suite.
"""

__version__ = "1.0.0"

"""
Test Package
============

Unit and integration tests for the Phone Agent.

Test organization:
    - test_actions.py: Action registry and handler tests
    - test_response_parser.py: Action grammar and reply splitting tests
    - test_stream_parser.py: Streaming thinking/marker tests
    - test_agent.py: Step engine and task loop tests
    - test_llm_client.py: Model client tests
    - test_adb_device.py: ADB device tests
    - test_api.py: FastAPI endpoint and WebSocket tests

Run tests with:
    pytest tests/ -v
"""

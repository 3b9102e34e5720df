"""
Vision Buddy Test Suite

Test Organization:
    tests/
    ├── __init__.py          # This file
    ├── conftest.py          # Orchestrator wired to mock collaborators
    ├── fixtures/            # Mock camera, vision, speech and registry
    └── unit/                # Unit tests (no network, audio or camera)

Running Tests:
    # Run all tests
    pytest tests/

    # Run with coverage
    pytest tests/ --cov=visionbuddy --cov=services --cov=voice --cov-report=html

Requirements:
    pip install -e ".[test]"
"""

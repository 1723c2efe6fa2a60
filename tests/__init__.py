"""
modhatch test suite
===================

Test Modules
------------
- test_identifiers.py: Mod id / package validation and name derivation
- test_models.py: ProjectSpec and enum behaviour
- test_versions.py: Version resolution, fetchers and fallbacks
- test_renderer.py: Template stores and strict placeholder rendering
- test_patcher.py: Line-level config edits
- test_materializer.py: File writes, relocations and pruning
- test_state.py: The modhatch.toml state record
- test_global_config.py: User preferences and options.txt
- test_generator.py: End-to-end init / add runs
- test_cli.py: Command-line interface

Running Tests
-------------
    # Run all tests
    pytest

    # Run specific module
    pytest tests/test_generator.py

    # Run specific test class
    pytest tests/test_generator.py::TestAdd
"""

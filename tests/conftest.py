# FILE: tests/conftest.py

import pytest
import sys
import os
import logging
from pathlib import Path

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from field_dictionary import FieldDictionary
from configurability import ConfigurabilityResolver
from dictionary_models import ConfigurabilityEntry

# ==============================================================================
# PYTEST CONFIGURATION & HOOKS
# ==============================================================================

def pytest_configure(config):
    """Configure pytest settings and markers."""
    config.addinivalue_line("markers", "unit: Pure unit tests with no external dependencies.")
    config.addinivalue_line("markers", "integration: Tests exercising several modules or bundled data together.")

@pytest.fixture(scope="session", autouse=True)
def setup_test_environment(pytestconfig):
    """Set up test environment with logging configuration."""
    # Use pytest's log_cli_level if available, otherwise default to INFO
    log_level = pytestconfig.getoption("log_cli_level") or "INFO"
    logging.basicConfig(
        level=log_level.upper(),
        format="[%(asctime)s] [%(levelname)s] [%(name)s:%(lineno)d] - %(message)s",
        stream=sys.stdout,
        force=True,
    )
    if log_level.upper() != "DEBUG":
        logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.info(f"Test logging configured with level: {log_level.upper()}")
    yield

# ==============================================================================
# TEST DATA
# ==============================================================================

SAMPLE_SEGMENT_RECORDS = [
    {
        "segment": "PID",
        "name": "Patient Identification",
        "description": "Patient demographics.",
        "fields": [
            {"field": 3, "name": "Patient Identifier List", "dataType": "CX", "description": "Patient identifiers.",
             "components": [
                 {"position": 1, "name": "ID", "dataType": "ST"},
                 {"position": 4, "name": "Assigning Authority", "dataType": "HD"},
             ]},
            {"field": 5, "name": "Patient Name", "dataType": "XPN", "description": "Legal name.", "required": True},
        ],
    },
    {
        "segment": "OBX",
        "name": "Observation/Result",
        "description": "A single observation.",
        "fields": [
            {"field": 5, "name": "Observation Value", "dataType": "*", "description": "The value.",
             "components": [
                 {"position": 2, "name": "Text", "dataType": "ST"},
             ]},
        ],
    },
]

@pytest.fixture(scope="session")
def sample_orm_message() -> str:
    """A small ORM^O01 order with CR segment terminators."""
    return "\r".join([
        "MSH|^~\\&|AppA|FacA|AppB|FacB|20240101120000||ORM^O01|MSG001|P|2.3",
        "PID|1||12345^^^MRN||Doe^John^^^^",
        "ORC|NW|ORD100^AppA|FIL200^AppB",
        "OBR|1|ORD100|FIL200|CBC^Complete Blood Count^L",
        "OBX|1|CE|WBC^White Cell Count^L||7.5^Normal~8.1^High|10*3/uL",
    ])

@pytest.fixture
def sample_dictionary() -> FieldDictionary:
    """A fresh, small dictionary per test, since edits mutate it."""
    return FieldDictionary.from_records(SAMPLE_SEGMENT_RECORDS)

@pytest.fixture
def sample_resolver(sample_dictionary: FieldDictionary) -> ConfigurabilityResolver:
    entries = [
        ConfigurabilityEntry(fieldPosition="OBX.5.2", fieldName="Observation Value › Text",
                             emrLocation="Results > Display", imagePaths=[]),
        ConfigurabilityEntry(fieldPosition="PID.3", fieldName="Patient Identifier List",
                             emrLocation="Admin > Identifiers", imagePaths=["/emr-images/PID_3_1.png"],
                             notes="MRN first"),
    ]
    return ConfigurabilityResolver(sample_dictionary, entries)

@pytest.fixture(scope="session")
def bundled_data_dir() -> Path:
    return Path(__file__).parent.parent / "src" / "data"

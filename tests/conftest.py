"""Shared fixtures: a small patient bundle and a terminology directory."""

import base64
import json
import logging

import pytest

LOINC = "http://loinc.org"
SNOMED = "http://snomed.info/sct"
HBA1C_VALUE_SET = "http://example.org/fhir/ValueSet/hba1c"


def observation(resource_id, patient_id, code, system=LOINC):
    return {
        "resourceType": "Observation",
        "id": resource_id,
        "status": "final",
        "subject": {"reference": f"Patient/{patient_id}"},
        "code": {"coding": [{"system": system, "code": code}]},
    }


@pytest.fixture
def sample_resources():
    """Two patients, three observations, one condition."""
    return [
        {"resourceType": "Patient", "id": "123", "name": [{"family": "Smith"}]},
        {"resourceType": "Patient", "id": "456", "name": [{"family": "Jones"}]},
        observation("obs-1", "123", "4548-4"),
        observation("obs-2", "123", "2339-0"),
        observation("obs-3", "456", "4548-4"),
        {
            "resourceType": "Condition",
            "id": "cond-1",
            "subject": {"reference": "Patient/123"},
            "code": {"coding": [{"system": SNOMED, "code": "44054006"}]},
        },
    ]


@pytest.fixture
def sample_bundle(sample_resources):
    return {
        "resourceType": "Bundle",
        "type": "collection",
        "entry": [{"resource": resource} for resource in sample_resources],
    }


@pytest.fixture
def bundle_file(tmp_path, sample_bundle):
    path = tmp_path / "patient-bundle.json"
    path.write_text(json.dumps(sample_bundle))
    return path


@pytest.fixture
def hba1c_value_set():
    return {
        "resourceType": "ValueSet",
        "id": "hba1c",
        "url": HBA1C_VALUE_SET,
        "version": "1.0.0",
        "expansion": {
            "contains": [
                {"system": LOINC, "code": "4548-4", "display": "Hemoglobin A1c"},
                {"system": LOINC, "code": "17856-6"},
            ]
        },
    }


@pytest.fixture
def terminology_dir(tmp_path, hba1c_value_set):
    directory = tmp_path / "terminology"
    directory.mkdir()
    (directory / "hba1c.json").write_text(json.dumps(hba1c_value_set))
    return directory


def cql_library(name, version, text):
    return {
        "resourceType": "Library",
        "id": f"{name}-{version}",
        "name": name,
        "version": version,
        "content": [{
            "contentType": "text/cql",
            "data": base64.b64encode(text.encode("utf-8")).decode("ascii"),
        }],
    }


@pytest.fixture
def library_bundle():
    return {
        "resourceType": "Bundle",
        "type": "collection",
        "entry": [
            {"resource": cql_library("Diabetes", "1.0.0", "library Diabetes version '1.0.0'")},
            {"resource": cql_library("Diabetes", "1.10.0", "library Diabetes version '1.10.0'")},
            {"resource": cql_library("Diabetes", "1.2.0", "library Diabetes version '1.2.0'")},
            {"resource": {"resourceType": "Patient", "id": "123"}},
        ],
    }


@pytest.fixture
def reset_logging():
    """Remove handlers installed by setup_logging after the test."""
    yield
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.WARNING)
    for name in ("urllib3", "requests"):
        logging.getLogger(name).setLevel(logging.NOTSET)

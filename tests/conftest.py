"""
Shared pytest fixtures for feedback DSL tests.

Results are built the way the experiment host delivers them: a list of
component results whose ``parsedData`` is an array of trials, a single
response object, or null.
"""

import logging

import pytest

from feedback_dsl.logging_config import ROOT_LOGGER_NAME
from feedback_dsl.models import EnrichedResult


def build_result(*parsed_data):
    """EnrichedResult with one component per parsedData payload."""
    return EnrichedResult.model_validate(
        {"componentResults": [{"parsedData": data} for data in parsed_data]}
    )


@pytest.fixture
def make_result():
    """Factory fixture: make_result(trials, response, ...) -> EnrichedResult."""
    return build_result


@pytest.fixture
def trials():
    """Three reaction-time trials; only the first is correct."""
    return [
        {"trial_type": "html-keyboard-response", "trial_index": 0, "rt": 100,
         "correct": True, "stimulus": "red", "response": {"Q1": "yes"}},
        {"trial_type": "html-keyboard-response", "trial_index": 1, "rt": 200,
         "correct": False, "stimulus": "green", "response": {"Q1": "no"}},
        {"trial_type": "html-keyboard-response", "trial_index": 2, "rt": 300,
         "correct": False, "stimulus": "blue", "response": {"Q1": "yes"}},
    ]


@pytest.fixture
def survey():
    """A one-shot questionnaire response."""
    return {"age": 30, "name": "Ada", "consent": True}


@pytest.fixture
def result(make_result, trials, survey):
    """A participant with a trial block, a survey and an empty component."""
    return make_result(trials, survey, None)


@pytest.fixture
def other_result(make_result):
    """A second participant, for across-scope statistics."""
    return make_result([
        {"rt": 400, "correct": True, "stimulus": "red"},
        {"rt": 500, "correct": True, "stimulus": "red"},
    ])


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers configure_logging installed so each test starts clean."""
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True

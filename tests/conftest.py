"""Shared fixtures for flow service tests.

FakeFlowDB keeps company records in memory and follows the FlowDB contract,
including the conditional write used for optimistic locking.
"""

import copy
import os

import pytest

# Console logging only during tests
os.environ["LOKI_URL"] = ""

from database.flow_db import FlowDB
from exceptions.flow_exception import FlowDBException
from services.flow_editor_service import FlowEditorService
from services.flow_service import FlowService
from services.flow_template_service import FlowTemplateService
from services.flow_validation_service import FlowValidationService
from services.node_render_service import NodeRenderService
from utils.log_utils import LogUtil


class FakeFlowDB:
    """In-memory stand-in for FlowDB."""

    FLOW_FIELD = FlowDB.FLOW_FIELD

    def __init__(self, company_ids=(42, 43)):
        self.companies = {
            company_id: {"_id": company_id, "name": f"Company {company_id}", self.FLOW_FIELD: None}
            for company_id in company_ids
        }
        self.fail_with: FlowDBException | None = None
        self.write_count = 0

    def stored_flow(self, company_id: int):
        return self.companies[company_id][self.FLOW_FIELD]

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def get_company(self, company_id: int):
        self._maybe_fail()
        company = self.companies.get(company_id)
        return copy.deepcopy(company) if company is not None else None

    async def update_flow_config(self, company_id: int, flow_config: dict, expected_version=None):
        self._maybe_fail()
        company = self.companies.get(company_id)
        if company is None:
            return None
        if expected_version is not None:
            stored = company[self.FLOW_FIELD]
            stored_version = stored.get("version", 0) if stored else 0
            if stored_version != expected_version:
                return None
        company[self.FLOW_FIELD] = copy.deepcopy(flow_config)
        self.write_count += 1
        return copy.deepcopy(company)

    async def clear_flow_config(self, company_id: int) -> bool:
        self._maybe_fail()
        company = self.companies.get(company_id)
        if company is None:
            return False
        company[self.FLOW_FIELD] = None
        self.write_count += 1
        return True

    def close(self):
        pass


@pytest.fixture
def log_util():
    return LogUtil()


@pytest.fixture
def flow_db():
    return FakeFlowDB()


@pytest.fixture
def flow_validation_service(log_util):
    return FlowValidationService(log_util=log_util)


@pytest.fixture
def node_render_service(log_util):
    return NodeRenderService(log_util=log_util)


@pytest.fixture
def flow_template_service(log_util):
    return FlowTemplateService(log_util=log_util)


@pytest.fixture
def flow_editor_service(log_util, flow_template_service):
    return FlowEditorService(log_util=log_util, flow_template_service=flow_template_service)


@pytest.fixture
def flow_service(log_util, flow_db, flow_validation_service, node_render_service):
    return FlowService(
        log_util=log_util,
        flow_db=flow_db,
        flow_validation_service=flow_validation_service,
        node_render_service=node_render_service,
    )

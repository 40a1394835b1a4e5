"""
Script to back up and restore the flow of a company.

Usage:
    python scripts/flow_backup.py export <companyId> <file.json>
    python scripts/flow_backup.py import <companyId> <file.json>

Export writes the stored flow as pretty-printed JSON. Import stores the file as
the company's flow without validation, restarting its version at 1.
"""

import asyncio
import sys
import os

# Add src directory to path to import modules
script_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(script_dir)
src_dir = os.path.join(project_root, 'src')
sys.path.insert(0, src_dir)

from utils.log_utils import LogUtil
from utils.environment_utils import EnvironmentUtils
from database.flow_db import FlowDB
from services.flow_service import FlowService
from services.flow_validation_service import FlowValidationService
from services.node_render_service import NodeRenderService


async def run_backup(command: str, company_id: int, file_path: str):
    # Initialize utilities
    log_util = LogUtil()
    environment_utils = EnvironmentUtils(log_util=log_util)

    # Initialize database and services
    flow_db = FlowDB(log_util=log_util, environment_utils=environment_utils)
    flow_service = FlowService(
        log_util=log_util,
        flow_db=flow_db,
        flow_validation_service=FlowValidationService(log_util=log_util),
        node_render_service=NodeRenderService(log_util=log_util)
    )

    try:
        if command == "export":
            flow_json = await flow_service.export_flow(company_id)
            with open(file_path, "w", encoding="utf-8") as f:
                f.write(flow_json)
            print(f"\n✅ Flow of company {company_id} exported to {file_path}")
        else:
            with open(file_path, "r", encoding="utf-8") as f:
                flow_json = f.read()
            flow = await flow_service.import_flow(company_id, flow_json)
            print(f"\n✅ Flow '{flow.name}' imported for company {company_id}")
            print(f"   Nodes: {len(flow.nodes)}, edges: {len(flow.edges)}, version: {flow.version}")

            validation = flow_service.validate_flow(flow)
            if not validation.valid:
                print("\n⚠️  The imported flow does not pass validation:")
                for error in validation.errors:
                    print(f"   • {error}")
    finally:
        # Close database connection
        flow_db.close()
        log_util.info(
            service_name="FlowBackup",
            message="Database connection closed"
        )


if __name__ == "__main__":
    if len(sys.argv) != 4 or sys.argv[1] not in ("export", "import"):
        print(__doc__)
        sys.exit(1)

    try:
        asyncio.run(run_backup(sys.argv[1], int(sys.argv[2]), sys.argv[3]))
        print("\n[SUCCESS] Script completed successfully!")
    except KeyboardInterrupt:
        print("\n[WARNING] Script interrupted by user")
        sys.exit(1)
    except Exception as e:
        print(f"\n[ERROR] Script failed with error: {str(e)}")
        sys.exit(1)

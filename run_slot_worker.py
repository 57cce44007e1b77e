"""
Slot Maintenance Worker Runner
Run this as a separate process: python run_slot_worker.py
(equivalent to: arq clinic_slots.worker.WorkerSettings)
"""

import logging
import sys

from arq import run_worker

from clinic_slots.worker import WorkerSettings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logger.info("🚀 Starting Slot Maintenance Worker...")
    try:
        run_worker(WorkerSettings)
    except KeyboardInterrupt:
        logger.info("👋 Slot worker stopped by user")
    except Exception as e:
        logger.error(f"❌ Slot worker crashed: {e}")
        sys.exit(1)

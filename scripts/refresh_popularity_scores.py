"""
Recompute movie popularity scores from plays, likes and catalog age.
Meant to run on a schedule so trending results stay fresh.

Usage:
    python scripts/refresh_popularity_scores.py
"""

import sys
from pathlib import Path

# Add parent directory to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import logging

from cinestream_recommendation_service.services import PopularityService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    """Main execution function."""
    logger.info("="*70)
    logger.info("REFRESH POPULARITY SCORES")
    logger.info("="*70)

    try:
        updated = PopularityService().refresh_scores()
        logger.info(f"✓ Refreshed scores for {updated} movies")

    except Exception as e:
        logger.error(f"Error refreshing popularity scores: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

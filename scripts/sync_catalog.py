"""
Sync the movie catalog into the recommendation database.

Movies are fetched from the upstream movie service, or imported from a CSV
export where multi-valued columns (categories, directors, actors, keywords)
are '|'-separated.

Usage:
    python scripts/sync_catalog.py
    python scripts/sync_catalog.py --csv data/movies.csv
    python scripts/sync_catalog.py --max-movies 500 --refresh-scores
"""

import sys
from pathlib import Path

# Add parent directory to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import logging
import argparse
import pandas as pd
import numpy as np

from cinestream_recommendation_service.models.database import SessionLocal, init_db
from cinestream_recommendation_service.repos import MovieRepository
from cinestream_recommendation_service.services import MovieCatalogLoader, PopularityService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

LIST_COLUMNS = ('categories', 'directors', 'actors', 'keywords')
LIST_SEPARATOR = '|'


def clean_dataframe_for_db(df: pd.DataFrame) -> pd.DataFrame:
    """
    Clean DataFrame by replacing NaN/NA values with None for database compatibility.

    Args:
        df: Input DataFrame

    Returns:
        Cleaned DataFrame
    """
    # Replace various types of missing values with None
    df = df.astype(object).replace({np.nan: None, pd.NA: None})
    df = df.where(pd.notnull(df), None)

    return df


def split_list_columns(df: pd.DataFrame, sep: str = LIST_SEPARATOR) -> pd.DataFrame:
    """Turn '|'-separated attribute columns into lists."""
    df = df.copy()
    for column in LIST_COLUMNS:
        if column not in df.columns:
            continue
        df[column] = df[column].apply(
            lambda v: [part.strip() for part in str(v).split(sep) if part.strip()] if v else []
        )
    return df


def load_movies_from_csv(csv_path: Path) -> list[dict]:
    """
    Load movies from a CSV export.

    Args:
        csv_path: Path to the CSV file

    Returns:
        List of movie dicts ready for storage
    """
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    movies_df = pd.read_csv(csv_path, dtype={'id': str})
    logger.info(f"Loaded {len(movies_df)} movies from {csv_path}")

    movies_df = split_list_columns(clean_dataframe_for_db(movies_df))
    return movies_df.to_dict('records')


def fetch_movies_from_service(
    movie_service_url: str | None = None,
    batch_size: int = 100,
    max_movies: int | None = None
) -> list[dict]:
    """
    Fetch the full catalog from the movie service.

    Args:
        movie_service_url: Override for the movie service URL
        batch_size: Movies per request
        max_movies: Optional cap (for testing)

    Returns:
        List of normalized movie dicts
    """
    loader = MovieCatalogLoader(movie_service_url=movie_service_url)
    return loader.get_all_movies(batch_size=batch_size, max_movies=max_movies)


def store_movies(movies: list[dict], session_factory=SessionLocal) -> int:
    """
    Replace the stored catalog with the given movies.

    Returns:
        Number of movies stored
    """
    db = session_factory()
    try:
        return MovieRepository(db).bulk_store_movies(movies)
    finally:
        db.close()


def main():
    """Main execution function."""
    parser = argparse.ArgumentParser(
        description='Sync movie catalog into the recommendation database'
    )
    parser.add_argument(
        '--csv',
        type=str,
        default=None,
        help='Import from a CSV file instead of the movie service'
    )
    parser.add_argument(
        '--movie-service-url',
        type=str,
        default=None,
        help='Movie service base URL (default: from config)'
    )
    parser.add_argument(
        '--batch-size',
        type=int,
        default=100,
        help='Movies per request (default: 100)'
    )
    parser.add_argument(
        '--max-movies',
        type=int,
        default=None,
        help='Maximum number of movies to sync (for testing)'
    )
    parser.add_argument(
        '--refresh-scores',
        action='store_true',
        help='Recompute popularity scores after syncing'
    )

    args = parser.parse_args()

    logger.info("="*70)
    logger.info("SYNC MOVIE CATALOG")
    logger.info("="*70)
    logger.info(f"Source: {args.csv or 'movie service'}")
    logger.info(f"Max movies: {args.max_movies or 'all'}")
    logger.info("="*70)

    try:
        init_db()

        if args.csv:
            movies = load_movies_from_csv(Path(args.csv))
            if args.max_movies:
                movies = movies[:args.max_movies]
        else:
            movies = fetch_movies_from_service(
                movie_service_url=args.movie_service_url,
                batch_size=args.batch_size,
                max_movies=args.max_movies
            )

        count = store_movies(movies)

        updated = 0
        if args.refresh_scores:
            updated = PopularityService().refresh_scores()

        logger.info("\n" + "="*70)
        logger.info("✓ CATALOG SYNC COMPLETE")
        logger.info("="*70)
        logger.info(f"Movies stored: {count}")
        if args.refresh_scores:
            logger.info(f"Scores refreshed: {updated}")

    except Exception as e:
        logger.error(f"Error during catalog sync: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

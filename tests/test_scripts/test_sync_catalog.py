"""
Tests for scripts/sync_catalog.py
"""
from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest

from cinestream_recommendation_service.models import Movie
from scripts.sync_catalog import (
    clean_dataframe_for_db,
    fetch_movies_from_service,
    load_movies_from_csv,
    main,
    split_list_columns,
    store_movies,
)


class TestCleanDataframeForDb:
    """Tests for clean_dataframe_for_db function."""

    def test_clean_dataframe_replaces_nan_with_none(self):
        """Test that NaN values are replaced with None."""
        df = pd.DataFrame(
            {"id": ["1", "2", "3"], "title": ["A", "B", np.nan], "score": [8.5, np.nan, 7.0]}
        )

        result = clean_dataframe_for_db(df)

        assert result.iloc[1]["score"] is None
        assert result.iloc[2]["title"] is None

    def test_clean_dataframe_preserves_valid_values(self):
        df = pd.DataFrame({"id": ["1"], "title": ["A"], "score": [8.5]})

        result = clean_dataframe_for_db(df)

        assert result.iloc[0]["title"] == "A"
        assert result.iloc[0]["score"] == 8.5


class TestSplitListColumns:
    """Tests for split_list_columns function."""

    def test_splits_pipe_separated_values(self):
        df = pd.DataFrame({"id": ["1"], "categories": ["Drama| Crime"], "actors": [None]})

        result = split_list_columns(df)

        assert result.iloc[0]["categories"] == ["Drama", "Crime"]
        assert result.iloc[0]["actors"] == []

    def test_ignores_missing_columns(self):
        df = pd.DataFrame({"id": ["1"], "title": ["A"]})

        result = split_list_columns(df)

        assert list(result.columns) == ["id", "title"]


class TestLoadMoviesFromCsv:
    """Tests for load_movies_from_csv function."""

    def test_loads_records(self, tmp_path):
        # Arrange
        csv_path = tmp_path / "movies.csv"
        pd.DataFrame([
            {"id": "007", "title": "Spy", "categories": "Action|Thriller", "directors": "", "score": 8.1},
            {"id": "2", "title": "Quiet", "categories": None, "directors": "Ava Reyes", "score": None},
        ]).to_csv(csv_path, index=False)

        # Act
        movies = load_movies_from_csv(csv_path)

        # Assert
        assert movies[0]["id"] == "007"
        assert movies[0]["categories"] == ["Action", "Thriller"]
        assert movies[0]["directors"] == []
        assert movies[1]["categories"] == []
        assert movies[1]["directors"] == ["Ava Reyes"]
        assert movies[1]["score"] is None

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_movies_from_csv(tmp_path / "nope.csv")


class TestFetchAndStore:
    """Tests for fetch_movies_from_service and store_movies."""

    @patch('scripts.sync_catalog.MovieCatalogLoader')
    def test_fetch_movies_from_service(self, mock_loader_cls):
        # Arrange
        mock_loader_cls.return_value.get_all_movies.return_value = [{"id": "1"}]

        # Act
        movies = fetch_movies_from_service("http://movies", batch_size=50, max_movies=10)

        # Assert
        assert movies == [{"id": "1"}]
        mock_loader_cls.assert_called_once_with(movie_service_url="http://movies")
        mock_loader_cls.return_value.get_all_movies.assert_called_once_with(batch_size=50, max_movies=10)

    def test_store_movies_writes_catalog(self, test_session_factory, sample_movies_list, test_db_session):
        # Act
        count = store_movies(sample_movies_list, session_factory=test_session_factory)

        # Assert
        assert count == len(sample_movies_list)
        assert test_db_session.query(Movie).count() == len(sample_movies_list)


class TestMain:
    """Tests for main function."""

    @patch('scripts.sync_catalog.store_movies', return_value=2)
    @patch('scripts.sync_catalog.load_movies_from_csv', return_value=[{"id": "1"}, {"id": "2"}])
    @patch('scripts.sync_catalog.init_db')
    def test_main_with_csv(self, mock_init_db, mock_load, mock_store, mock_sys_argv):
        # Arrange
        mock_sys_argv(['sync_catalog.py', '--csv', 'movies.csv'])

        # Act
        main()

        # Assert
        mock_init_db.assert_called_once()
        mock_store.assert_called_once_with([{"id": "1"}, {"id": "2"}])

    @patch('scripts.sync_catalog.PopularityService')
    @patch('scripts.sync_catalog.store_movies', return_value=1)
    @patch('scripts.sync_catalog.fetch_movies_from_service', return_value=[{"id": "1"}])
    @patch('scripts.sync_catalog.init_db')
    def test_main_from_service_with_refresh(self, mock_init_db, mock_fetch, mock_store, mock_popularity, mock_sys_argv):
        # Arrange
        mock_sys_argv(['sync_catalog.py', '--max-movies', '5', '--refresh-scores'])

        # Act
        main()

        # Assert
        mock_fetch.assert_called_once_with(movie_service_url=None, batch_size=100, max_movies=5)
        mock_popularity.return_value.refresh_scores.assert_called_once()

    @patch('scripts.sync_catalog.init_db', side_effect=RuntimeError("db down"))
    def test_main_exits_on_error(self, mock_init_db, mock_sys_argv):
        # Arrange
        mock_sys_argv(['sync_catalog.py'])

        # Act & Assert
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1

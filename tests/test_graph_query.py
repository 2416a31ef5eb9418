"""
Tests for the graph query executor and row rendering.
"""

import pytest
from neo4j.exceptions import ServiceUnavailable

from recipe_assistant.errors import QueryExecutionFailure
from recipe_assistant.services.graph_query import (
    NO_RESULTS,
    GraphQueryExecutor,
    render_as_text,
    render_row,
)

from fakes import fake_driver


class TestRenderAsText:
    """Deterministic text serialization of query rows."""

    def test_empty_result_renders_sentinel(self):
        assert render_as_text([]) == "Query returned no results."
        assert NO_RESULTS == "Query returned no results."

    def test_row_columns_joined_with_comma(self):
        rows = [{"name": "Pumpkin Soup", "cooking_time": 40, "seasonal": True}]

        assert render_as_text(rows) == "name: Pumpkin Soup, cooking_time: 40, seasonal: True"

    def test_rows_joined_with_newline(self):
        rows = [{"name": "Pumpkin Soup"}, {"name": "Asparagus Risotto"}]

        assert render_as_text(rows) == "name: Pumpkin Soup\nname: Asparagus Risotto"

    def test_null_columns_are_omitted(self):
        assert render_row({"name": "Watermelon Salad", "calories": None, "cost": 4.5}) == (
            "name: Watermelon Salad, cost: 4.5"
        )

    def test_all_null_rows_are_dropped(self):
        rows = [{"name": None}, {"name": "Gazpacho"}]

        assert render_as_text(rows) == "name: Gazpacho"
        assert render_as_text([{"name": None}]) == NO_RESULTS

    def test_rendered_rows_split_back_into_pairs(self):
        """Splitting on newline, ', ' and ': ' recovers scalar key/value pairs."""
        rows = [
            {"name": "Pumpkin Soup", "difficulty": "easy", "calories": 210},
            {"name": "Lamb Tagine", "difficulty": "medium", "calories": 540},
        ]

        recovered = [
            dict(pair.split(": ", 1) for pair in line.split(", "))
            for line in render_as_text(rows).split("\n")
        ]

        assert recovered == [
            {key: str(value) for key, value in row.items()} for row in rows
        ]


class TestGraphQueryExecutor:
    """Query execution through the neo4j driver."""

    @pytest.mark.asyncio
    async def test_execute_returns_rows(self, seasonal_rows):
        driver = fake_driver(seasonal_rows)
        executor = GraphQueryExecutor(driver, database="recipes")

        rows = await executor.execute("MATCH (r:Recipe) RETURN r.name AS name LIMIT 3")

        assert rows == seasonal_rows
        driver.execute_query.assert_awaited_once_with(
            "MATCH (r:Recipe) RETURN r.name AS name LIMIT 3", database_="recipes"
        )

    @pytest.mark.asyncio
    async def test_query_text_is_passed_unmodified(self):
        driver = fake_driver([])
        executor = GraphQueryExecutor(driver)
        query = "MATCH (r:Recipe)\nWHERE r.name = 'Soup' RETURN r LIMIT 25"

        await executor.execute(query)

        assert driver.execute_query.await_args.args[0] == query
        assert driver.execute_query.await_args.kwargs["database_"] is None

    @pytest.mark.asyncio
    async def test_run_as_text(self, seasonal_rows):
        executor = GraphQueryExecutor(fake_driver(seasonal_rows))

        text = await executor.run_as_text("MATCH (r:Recipe) RETURN r")

        assert text.splitlines() == [
            "name: Pumpkin Soup, season: Autumn, cooking_time: 40",
            "name: Asparagus Risotto, season: Spring, cooking_time: 35",
            "name: Watermelon Salad, season: Summer",
        ]

    @pytest.mark.asyncio
    async def test_empty_result_as_text(self):
        executor = GraphQueryExecutor(fake_driver([]))

        assert await executor.run_as_text("MATCH (n:Nothing) RETURN n") == NO_RESULTS

    @pytest.mark.asyncio
    async def test_driver_errors_become_query_failures(self):
        driver = fake_driver([])
        driver.execute_query.side_effect = ServiceUnavailable("Unable to retrieve routing information")
        executor = GraphQueryExecutor(driver)

        with pytest.raises(QueryExecutionFailure) as exc_info:
            await executor.execute("MATCH (r) RETURN r")

        assert "Unable to retrieve routing information" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transport_errors_become_query_failures(self):
        driver = fake_driver([])
        driver.execute_query.side_effect = OSError("connection reset by peer")
        executor = GraphQueryExecutor(driver)

        with pytest.raises(QueryExecutionFailure) as exc_info:
            await executor.execute("MATCH (r) RETURN r")

        assert exc_info.value.message == "connection reset by peer"

    @pytest.mark.asyncio
    async def test_blank_error_falls_back_to_type_name(self):
        driver = fake_driver([])
        driver.execute_query.side_effect = TimeoutError()
        executor = GraphQueryExecutor(driver)

        with pytest.raises(QueryExecutionFailure) as exc_info:
            await executor.execute("MATCH (r) RETURN r")

        assert exc_info.value.message == "TimeoutError"

    @pytest.mark.asyncio
    async def test_connectivity_and_close_delegate_to_driver(self):
        driver = fake_driver([])
        executor = GraphQueryExecutor(driver)

        await executor.verify_connectivity()
        await executor.close()

        driver.verify_connectivity.assert_awaited_once()
        driver.close.assert_awaited_once()

"""DuckDB reader for uploaded CSV files — ephemeral per-call instances."""

import duckdb
from typing import Optional, Dict, Any

from qrstudio.core.exceptions import ValidationError


class DuckDBEngine:
    """Reads delimited files through an in-memory DuckDB connection.

    Each method creates an ephemeral connection so concurrent uploads never
    share state.
    """

    @staticmethod
    def _get_connection(memory_limit: str = "256MB") -> duckdb.DuckDBPyConnection:
        """Create a new in-memory DuckDB connection with safety limits."""
        conn = duckdb.connect(":memory:")
        conn.execute(f"SET memory_limit='{memory_limit}'")
        conn.execute("SET threads=2")
        return conn

    @staticmethod
    def read_rows(file_path: str, limit: Optional[int] = None) -> Dict[str, Any]:
        """Read a CSV with a header row, every column as text.

        Args:
            file_path: Local path to the file.
            limit: Max rows to return (all when None); ``total_count`` counts every row.

        Returns:
            {"columns": [...], "rows": [[str, ...], ...], "total_count": int}
            NULLs come back as empty strings.
        """
        conn = DuckDBEngine._get_connection()
        try:
            read_fn = DuckDBEngine._read_function(file_path)
            count_result = conn.execute(f"SELECT COUNT(*) FROM {read_fn}").fetchone()
            total_count = count_result[0] if count_result else 0

            sql = f"SELECT * FROM {read_fn}"
            if limit is not None:
                sql += f" LIMIT {int(limit)}"
            result = conn.execute(sql)
            columns = [desc[0] for desc in result.description]
            rows = [
                ["" if value is None else str(value) for value in row]
                for row in result.fetchall()
            ]
            return {"columns": columns, "rows": rows, "total_count": total_count}
        except duckdb.Error as e:
            raise ValidationError(f"Could not read CSV file: {e}")
        finally:
            conn.close()

    # --- Internal helpers ---

    @staticmethod
    def _read_function(file_path: str) -> str:
        """Return the DuckDB read expression for a CSV path."""
        escaped_path = file_path.replace("'", "''")
        # comma-delimited, double-quoted, short rows padded with NULL
        return (
            f"read_csv('{escaped_path}', header=true, all_varchar=true, "
            "delim=',', quote='\"', escape='\"', null_padding=true)"
        )

import argparse
import io
import logging
import sys
from typing import List, Optional

from sqlite_reader.database import Database
from sqlite_reader.exceptions import DatabaseError
from sqlite_reader.queries import Query, QueryExecutor
from sqlite_reader.schema import SchemaCatalog

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def run_command(database: Database, command: str) -> str:
    """Runs a dot command or a COUNT(*) query and returns what should be printed"""
    # The first page in an sqlite db is a special node that contains the schema of the db
    sqlite_schema = SchemaCatalog.from_file(database.file, database.header)

    if command == ".dbinfo":
        return "\n".join(
            [
                f"database page size: {database.page_size}",
                f"number of tables: {sqlite_schema.table_count}",
            ]
        )
    elif command == ".tables":
        return " ".join(sqlite_schema.list_tables())
    else:
        query = Query.parse_query(command)
        executor = QueryExecutor(database.file, database.header, sqlite_schema)
        return str(executor.execute(query))


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Read metadata and row counts from an SQLite database file"
    )
    parser.add_argument("database_file_path", help="Path to the database file")
    parser.add_argument(
        "command", help=".dbinfo, .tables or SELECT COUNT(*) FROM <table>"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log decoding steps to stderr"
    )
    args = parser.parse_args(argv)

    # Names decoded with surrogateescape or surrogatepass cannot be written strictly
    for stream in (sys.stdout, sys.stderr):
        if isinstance(stream, io.TextIOWrapper):
            stream.reconfigure(errors="backslashreplace")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )

    logger.debug("Running %r against %s", args.command, args.database_file_path)
    try:
        with Database(args.database_file_path) as database:
            output = run_command(database, args.command)
    except DatabaseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())

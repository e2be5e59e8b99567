from __future__ import annotations
import logging

import sqlparse
from sqlparse.sql import Statement, Token
from sqlparse.tokens import Comment, Keyword, Name, Punctuation, String

from sqlite_reader.exceptions import CorruptPage, UnsupportedQuery
from sqlite_reader.header import FileHeader
from sqlite_reader.pages import Page, PageType
from sqlite_reader.schema import SchemaCatalog

from typing import BinaryIO, List

logger = logging.getLogger(__name__)

# Token values of the only query shape supported, followed by the table name
COUNT_QUERY_PREFIX = ["SELECT", "COUNT", "(", "*", ")", "FROM"]
IDENTIFIER_QUOTES = {'"': '"', "`": "`", "[": "]"}


class Query:
    query_components: List[str]
    parsed_query: Statement
    table_name: str

    def __init__(
        self, query_components: List[str], parsed_query: Statement, table_name: str
    ):
        self.query_components = query_components
        self.parsed_query = parsed_query
        self.table_name = table_name

    @staticmethod
    def parse_query(query_str: str) -> Query:
        """
        Parses a query of the form SELECT COUNT(*) FROM <table>.

        Keywords are case insensitive, the table name may be quoted and a trailing
        semicolon is allowed. Any other query raises UnsupportedQuery.
        """
        statements = sqlparse.split(query_str)
        if len(statements) != 1:
            raise UnsupportedQuery(f"Expected a single statement, got {len(statements)}")

        statement = sqlparse.parse(statements[0])[0]
        if statement.get_type() != "SELECT":
            raise UnsupportedQuery("Only SELECT queries are supported")

        tokens = Query._significant_tokens(statement)
        query_components = [token.value for token in tokens]

        if (
            len(tokens) != len(COUNT_QUERY_PREFIX) + 1
            or [value.upper() for value in query_components[:-1]] != COUNT_QUERY_PREFIX
            or not Query._is_identifier(tokens[-1])
        ):
            raise UnsupportedQuery(
                f"Only SELECT COUNT(*) FROM <table> is supported, got: {query_str}"
            )

        # the table is always the last token of the query
        table_name = Query._unquote(tokens[-1].value)
        return Query(query_components, statement, table_name)

    @staticmethod
    def _significant_tokens(statement: Statement) -> List[Token]:
        tokens = [
            token
            for token in statement.flatten()
            if not token.is_whitespace and token.ttype not in Comment
        ]
        if tokens and tokens[-1].ttype in Punctuation and tokens[-1].value == ";":
            tokens.pop()
        return tokens

    @staticmethod
    def _is_identifier(token: Token) -> bool:
        # Table names that happen to be keywords are lexed as keywords
        return token.ttype in Name or token.ttype in String.Symbol or token.ttype in Keyword

    @staticmethod
    def _unquote(identifier: str) -> str:
        closing = IDENTIFIER_QUOTES.get(identifier[:1])
        if closing and len(identifier) >= 2 and identifier.endswith(closing):
            inner = identifier[1:-1]
            if closing != "]":
                inner = inner.replace(closing * 2, closing)
            return inner
        return identifier


class QueryExecutor:
    def __init__(
        self,
        database_file: BinaryIO,
        file_header: FileHeader,
        sqlite_schema: SchemaCatalog,
    ):
        self.database_file = database_file
        self.file_header = file_header
        self.sqlite_schema = sqlite_schema

    def execute(self, query: Query) -> int:
        logger.debug("Executing %s", query.parsed_query)
        return self.count_rows(query.table_name)

    def count_rows(self, table_name: str) -> int:
        """
        Number of rows in a table, read from the cell count of its root page.

        Only tables that fit in a single leaf page are supported. A table whose root is an
        interior page raises UnsupportedQuery rather than reporting a partial count.
        """
        table_schema = self.sqlite_schema.find(table_name)
        if table_schema.type != "table":
            raise UnsupportedQuery(
                f"'{table_name}' is a {table_schema.type}, only tables can be counted"
            )

        page = Page.from_file(self.database_file, table_schema.root_page, self.file_header)

        if page.page_type == PageType.INTERIOR_TABLE:
            raise UnsupportedQuery(
                f"Table '{table_name}' spans multiple pages, which is not supported"
            )
        if page.page_type != PageType.LEAF_TABLE:
            # WITHOUT ROWID tables are stored as index b-trees
            if _is_without_rowid(table_schema.sql):
                raise UnsupportedQuery(f"Table '{table_name}' is a WITHOUT ROWID table")
            raise CorruptPage(
                f"Root page {page.number} of '{table_name}' is a {page.page_type.name} page"
            )

        return page.cell_count


def _is_without_rowid(sql: str | None) -> bool:
    return bool(sql) and "WITHOUT ROWID" in " ".join(sql.upper().split())

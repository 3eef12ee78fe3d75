from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from typing import Optional, Union

from opensearch_notebook.common.logger import execution_context, get_logger
from opensearch_notebook.configs.connection import ConnectionOverrides
from opensearch_notebook.parsing.schemas import QueryBlock, QueryMetadata, QueryType
from opensearch_notebook.validation.pipeline import ValidationContext, ValidationPipeline, create_context
from .connection import ConnectionManager
from .error_handler import create_api_error_response, create_error_response
from .response_processor import process_query_response
from .schemas import ApiResponse, QueryResult

logger = get_logger("execution_engine")


class QueryExecutionEngine:
    """
    Runs one query block end to end: validate, dispatch, normalize.

    Every public method returns a QueryResult; failures never propagate as
    exceptions. Validation failures return before any I/O.

    Args:
        connection_manager: Dispatches requests on the effective connection.
        pipeline: Validation rules; defaults to the standard pipeline.
    """

    def __init__(self, connection_manager: ConnectionManager, pipeline: Optional[ValidationPipeline] = None):
        self.connection_manager = connection_manager
        self.pipeline = pipeline or ValidationPipeline()

    @staticmethod
    def create_context(
        query: str,
        query_type: Union[QueryType, str],
        timeout: Optional[int] = None,
        metadata: Optional[QueryMetadata] = None,
        overrides: Optional[ConnectionOverrides] = None,
    ) -> ValidationContext:
        return create_context(
            query,
            query_type,
            metadata=metadata,
            connection_overrides=overrides,
            timeout=timeout,
            start_time=time.time(),
        )

    async def execute_query(
        self,
        query: str,
        query_type: Union[QueryType, str],
        timeout: Optional[int] = None,
        metadata: Optional[QueryMetadata] = None,
        overrides: Optional[ConnectionOverrides] = None,
    ) -> QueryResult:
        return await self._run(query, query_type, timeout, metadata, overrides, is_explain=False)

    async def execute_explain_query(
        self,
        query: str,
        query_type: Union[QueryType, str],
        timeout: Optional[int] = None,
        metadata: Optional[QueryMetadata] = None,
        overrides: Optional[ConnectionOverrides] = None,
    ) -> QueryResult:
        return await self._run(query, query_type, timeout, metadata, overrides, is_explain=True)

    async def execute_query_from_block(self, block: QueryBlock) -> QueryResult:
        return await self.execute_query(
            block.content,
            block.query_type,
            timeout=block.metadata.timeout,
            metadata=block.metadata,
            overrides=block.connection_overrides,
        )

    async def execute_explain_query_from_block(self, block: QueryBlock) -> QueryResult:
        return await self.execute_explain_query(
            block.content,
            block.query_type,
            timeout=block.metadata.timeout,
            metadata=block.metadata,
            overrides=block.connection_overrides,
        )

    async def _run(
        self,
        query: str,
        query_type: Union[QueryType, str],
        timeout: Optional[int],
        metadata: Optional[QueryMetadata],
        overrides: Optional[ConnectionOverrides],
        is_explain: bool,
    ) -> QueryResult:
        start_time = time.time()
        try:
            resolved_type = QueryType(query_type)
        except ValueError as e:
            return create_error_response(e, start_time, custom_message=f"Unsupported query type: {query_type}")

        try:
            context = create_context(
                query,
                resolved_type,
                metadata=metadata,
                connection_overrides=overrides,
                timeout=timeout,
                start_time=start_time,
            )
        except ValueError as e:
            # pydantic.ValidationError, e.g. a None query
            return create_error_response(e, start_time)

        execution_id = uuid.uuid4().hex[:12]
        with execution_context(execution_id):
            logger.info(
                f"Executing {'explain ' if is_explain else ''}{context.query_type.value} query"
            )
            try:
                if is_explain:
                    failure = self.pipeline.validate_explain_query(context)
                else:
                    failure = self.pipeline.validate_query(context)
                if failure is not None:
                    return failure

                response = await self._dispatch(context, is_explain)
                if response.error:
                    return create_api_error_response(response, context.start_time)

                result = process_query_response(
                    response.data,
                    int((time.time() - context.start_time) * 1000),
                    context.query_type,
                    executed_at=datetime.fromtimestamp(context.start_time, tz=timezone.utc),
                )
                logger.info(f"Query succeeded in {result.execution_time}ms (rows: {result.row_count})")
                return result.model_copy(
                    update={
                        "request_info": response.request_info,
                        "response_info": response.response_info,
                        "connection_info": response.connection_info,
                    }
                )
            except Exception as e:
                logger.debug("Execution raised", exc_info=True)
                return create_error_response(e, context.start_time)

    async def _dispatch(self, context: ValidationContext, is_explain: bool) -> ApiResponse:
        manager = self.connection_manager
        if is_explain:
            return await manager.execute_explain_query(
                context.query, context.query_type, context.connection_overrides, context.timeout
            )
        if context.query_type == QueryType.API:
            return await manager.execute_api_operation(
                context.metadata.method,
                context.metadata.endpoint,
                context.query,
                context.connection_overrides,
                context.timeout,
            )
        return await manager.execute_query(
            context.query, context.query_type, context.connection_overrides, context.timeout
        )

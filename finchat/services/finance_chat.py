from __future__ import annotations

from finchat.errors import ValidationError
from finchat.models.chat import FinanceRequest, FinanceResponse
from finchat.services.chart_normalizer import normalize_chart
from finchat.services.chart_tool import CHART_TOOL, CHART_TOOL_NAME, SYSTEM_PROMPT
from finchat.services.llm_client import LLMClient, llm_client
from finchat.services.request_assembler import assemble_messages
from finchat.utils.logger import logger

CHART_GENERATED_TEXT = "Generated a chart."
EMPTY_RESPONSE_TEXT = "I received an empty response."


def validate_request(req: FinanceRequest) -> None:
    if req.messages is None:
        raise ValidationError("Messages array is required")
    if not (req.model or "").strip():
        raise ValidationError("Model selection is required")
    if req.file_data is not None and not req.file_data.base64:
        raise ValidationError("No file data")


class FinanceChat:
    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    def answer(self, req: FinanceRequest) -> FinanceResponse:
        validate_request(req)
        logger.info(
            "Finance chat: %d messages, model=%s, file=%s",
            len(req.messages),
            req.model,
            req.file_data.media_type if req.file_data else None,
        )

        outbound = assemble_messages(req.messages, req.file_data)
        reply = self.llm.create_message(
            req.model.strip(), outbound, system=SYSTEM_PROMPT, tools=[CHART_TOOL]
        )

        tool_use = reply.tool_use
        chart = None
        if tool_use is not None:
            if tool_use.name != CHART_TOOL_NAME:
                logger.warning("Model called unknown tool %r; ignoring it", tool_use.name)
            else:
                chart = normalize_chart(tool_use.input)
            if chart is None:
                logger.warning("Tool use detected but chart data processing failed. Returning text only.")

        if reply.text:
            content = reply.text
        elif chart is not None:
            content = CHART_GENERATED_TEXT
        else:
            content = EMPTY_RESPONSE_TEXT

        return FinanceResponse(
            content=content,
            has_tool_use=tool_use is not None,
            chart_data=chart.to_dict() if chart is not None else None,
        )


finance_chat = FinanceChat(llm_client)

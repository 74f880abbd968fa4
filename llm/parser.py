import json
import re
from typing import Any, Dict

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class LlmWorkflowParser:
    """
    Adapter around the LLM output. The LLM is expected to return a stringified JSON
    document describing a workflow rule and its actions, sometimes wrapped in a
    markdown code fence despite being told not to.
    """

    def parse(self, llm_text: str) -> Dict[str, Any]:
        """
        Parse the LLM output into a dictionary that can be validated against the schema.

        Raises json.JSONDecodeError if the input is not valid JSON, and ValueError
        if it is valid JSON but not an object.
        """
        text = llm_text.strip()
        match = _FENCE.match(text)
        if match:
            text = match.group(1)
        payload = json.loads(text)
        if not isinstance(payload, dict):
            raise ValueError("Expected a JSON object describing a workflow")
        return payload

"""Prompt templates for each diagram family."""

from __future__ import annotations

DIAGRAM_HEADERS = {
    "flowchart": "graph TD",
    "sequence": "sequenceDiagram",
    "class": "classDiagram",
}

_DIAGRAM_NAMES = {
    "flowchart": "flowchart",
    "sequence": "sequence diagram",
    "class": "class diagram",
}

_SYNTAX_RULES = {
    "flowchart": """\
1. Start with "graph TD" on its own line
2. Each node must have a unique ID (like A, B, C or node1, node2)
3. Node text must be in square brackets: A[Text here]
4. Conditions should use curly braces: B{Condition}
5. Connections use -->: A --> B
6. Each statement should be on its own line
7. Indent all lines after "graph TD" with two spaces""",
    "sequence": """\
1. Start with "sequenceDiagram" on its own line
2. Define participants: participant A
3. Show interactions with arrows: A->>B: Message
4. Use -->> for return messages
5. Use + and - for activation boxes
6. Each statement should be on its own line
7. Indent all lines after "sequenceDiagram" with two spaces""",
    "class": """\
1. Start with "classDiagram" on its own line
2. Define classes: class ClassName
3. Define methods and properties inside classes using indentation
4. Show relationships with arrows: ClassA --> ClassB
5. Each statement should be on its own line
6. Indent all lines after "classDiagram" with two spaces""",
}

DIAGRAM_PROMPT_TEMPLATE = """\
You are an expert code analyst and diagram generator. Given the following {language} code, \
extract the logical structure (such as function definitions, if/else conditions, loops, \
function calls) and convert it into a {diagram_name} representation using Mermaid.js syntax.

Analyze the code for key control flow constructs: if, else, for, while, function definitions, \
return, and function calls.

IMPORTANT: Follow these rules for valid Mermaid {diagram_name} syntax:
{rules}

Output ONLY the Mermaid.js diagram code, nothing else.

Here's the code:
```{language}
{code}
```
"""

JSON_FLOWCHART_PROMPT_TEMPLATE = """\
Analyze the following code and create a flowchart description in JSON format.
Return an object with 'nodes' and 'edges' arrays that describe the algorithm's flow.

For nodes, include:
- id: unique string
- type: "start", "process", "decision", "io", or "end"
- data: {{ "label": "Description of the step" }}

For edges, include:
- id: unique string (e.g., "e1-2")
- source: ID of source node
- target: ID of target node
- label: (optional) condition or description

Example JSON:
{{
  "nodes": [
    {{ "id": "1", "type": "start", "data": {{ "label": "Start Algorithm" }} }},
    {{ "id": "2", "type": "process", "data": {{ "label": "Initialize variables" }} }},
    {{ "id": "3", "type": "decision", "data": {{ "label": "Is condition met?" }} }},
    {{ "id": "4", "type": "process", "data": {{ "label": "Process when true" }} }},
    {{ "id": "5", "type": "process", "data": {{ "label": "Process when false" }} }},
    {{ "id": "6", "type": "end", "data": {{ "label": "End Algorithm" }} }}
  ],
  "edges": [
    {{ "id": "e1-2", "source": "1", "target": "2" }},
    {{ "id": "e2-3", "source": "2", "target": "3" }},
    {{ "id": "e3-4", "source": "3", "target": "4", "label": "Yes" }},
    {{ "id": "e3-5", "source": "3", "target": "5", "label": "No" }},
    {{ "id": "e4-6", "source": "4", "target": "6" }},
    {{ "id": "e5-6", "source": "5", "target": "6" }}
  ]
}}

Follow these guidelines:
1. Start with a "start" node and end with an "end" node
2. Represent conditional branches with "decision" nodes
3. Represent loops by creating edges that point back to earlier nodes
4. Keep node labels concise but descriptive
5. Include all significant steps in the algorithm

Code to analyze:
```{language}
{code}
```

Return ONLY the JSON object, no additional text.
"""

SEQUENCE_PROMPT_TEMPLATE = """\
You are an expert in sequence diagram creation. Given the following ideas or requirements, \
create a sequence diagram representation using a structured JSON format.

The user has provided these ideas:
\"\"\"
{ideas}
\"\"\"

Analyze these ideas and identify:
1. Participants in the sequence (people, systems, databases, etc.)
2. Messages between participants
3. The order of interactions
4. Any conditional logic or alternative paths

Return a JSON object with EXACTLY the following structure:

{{
  "participants": ["Customer", "App", "Restaurant", "Courier"],
  "sequence": [
    {{"from": "Customer", "to": "App", "message": "Place order"}},
    {{"from": "App", "to": "Restaurant", "message": "Send order request"}},
    {{
      "alt": "Restaurant declines",
      "sequence": [
        {{"from": "Restaurant", "to": "App", "message": "Cannot fulfill order"}},
        {{"from": "App", "to": "Customer", "message": "Notify 'Order cancelled'"}}
      ]
    }},
    {{
      "alt": "Restaurant accepts",
      "sequence": [
        {{"from": "Restaurant", "to": "App", "message": "Accept order"}},
        {{"from": "App", "to": "Courier", "message": "Find nearest available courier"}},
        {{"from": "Courier", "to": "Customer", "message": "Deliver order"}}
      ]
    }}
  ]
}}

Guidelines:
- Replace the participants and messages with ones that match the user's ideas
- The "participants" array should contain all actors/systems involved in the sequence
- Each message in the "sequence" array represents an interaction between participants
- For conditional logic or alternative paths, use the "alt" structure with its own nested "sequence"
- Make sure all participants mentioned in messages are included in the participants array
- Keep message descriptions clear and concise
- Maintain the chronological order of interactions

Output ONLY the JSON object, nothing else.
"""

DATAFLOW_PROMPT_TEMPLATE = """\
You are an expert in sequence diagram creation. Given the following ideas or requirements, \
create a sequence diagram representation using a JSON graph format.

The user has provided these ideas:
\"\"\"
{ideas}
\"\"\"

Analyze these ideas and identify:
1. Actors/participants in the sequence
2. Messages between participants
3. The order of interactions
4. Any conditional logic or loops
5. Return messages and responses

Return a JSON object with the following structure:
{{
  "nodes": [
    {{ "id": "1", "type": "actor", "data": {{ "label": "User" }} }},
    {{ "id": "2", "type": "system", "data": {{ "label": "System" }} }},
    {{ "id": "3", "type": "database", "data": {{ "label": "Database" }} }}
  ],
  "edges": [
    {{ "id": "e1-2", "source": "1", "target": "2", "label": "Request data" }},
    {{ "id": "e2-3", "source": "2", "target": "3", "label": "Query database" }},
    {{ "id": "e3-2", "source": "3", "target": "2", "label": "Return results" }},
    {{ "id": "e2-1", "source": "2", "target": "1", "label": "Display data" }}
  ]
}}

Node types should be one of: "actor", "system", "database", "external", or "component".
Each node must have a unique id, appropriate type, and descriptive label.
Each edge must connect existing nodes and describe the message being sent.
The edges should be ordered to represent the sequence of interactions.

Output ONLY the JSON object, nothing else.
"""


def build_diagram_prompt(code: str, language: str, diagram_type: str) -> str:
    return DIAGRAM_PROMPT_TEMPLATE.format(
        language=language,
        diagram_name=_DIAGRAM_NAMES[diagram_type],
        rules=_SYNTAX_RULES[diagram_type],
        code=code,
    )


def build_json_flowchart_prompt(code: str, language: str) -> str:
    return JSON_FLOWCHART_PROMPT_TEMPLATE.format(language=language, code=code)


def build_sequence_prompt(ideas: str) -> str:
    return SEQUENCE_PROMPT_TEMPLATE.format(ideas=ideas)


def build_dataflow_prompt(ideas: str) -> str:
    return DATAFLOW_PROMPT_TEMPLATE.format(ideas=ideas)

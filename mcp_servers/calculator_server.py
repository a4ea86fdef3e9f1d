"""
Calculator MCP Tools

Provides tools for:
- Showing the calculator operation carousel
- Selecting an operation and showing the number input form
- Performing a calculation and showing the result card

Each tool result points the host at the widget that renders it through the
``openai/outputTemplate`` meta key.
"""

import logging
from typing import Any, Dict, List

from mcp_servers.base import (
    OUTPUT_TEMPLATE_KEY,
    ContentBlock,
    ResourceDescriptor,
    ToolDefinition,
    ToolResult,
    get_widget_url,
)
from mcp_servers.operations import (
    OPERATIONS,
    calculate,
    format_number,
    get_operation_emoji,
    get_operation_name,
    get_operation_symbol,
)
from mcp_servers.registry import ToolRegistry
from mcp_servers.schema import EnumSchema, NumberSchema, ObjectSchema

logger = logging.getLogger("mcp_servers.calculator")

CAROUSEL_WIDGET = "calculator-carousel.html"
INPUT_WIDGET = "calculator-input.html"
RESULT_WIDGET = "result-card.html"

OPERATION_SCHEMA = EnumSchema(values=OPERATIONS, description="The operation to perform")


async def handle_show_calculator(arguments: Dict[str, Any]) -> ToolResult:
    return ToolResult(
        content=[
            ContentBlock.text_block(
                "Welcome to Calcufy! 🧮\n\nPlease select an operation from the cards below:"
            ),
        ],
        structured_content={
            "message": "Select an operation to begin",
            "operations": list(OPERATIONS),
        },
        meta={OUTPUT_TEMPLATE_KEY: get_widget_url(CAROUSEL_WIDGET)},
    )


async def handle_select_operation(arguments: Dict[str, Any]) -> ToolResult:
    operation = arguments["operation"]
    operation_name = get_operation_name(operation)

    return ToolResult(
        content=[
            ContentBlock.text_block(f"{operation_name} selected! Please enter two numbers."),
        ],
        structured_content={
            "operation": operation,
            "operationName": operation_name,
            "symbol": get_operation_symbol(operation),
            "emoji": get_operation_emoji(operation),
            "message": "Please enter two numbers",
        },
        meta={OUTPUT_TEMPLATE_KEY: get_widget_url(INPUT_WIDGET)},
    )


async def handle_calculate(arguments: Dict[str, Any]) -> ToolResult:
    operation = arguments["operation"]
    num1 = arguments["num1"]
    num2 = arguments["num2"]

    calculation = calculate(operation, num1, num2)

    return ToolResult(
        content=[
            ContentBlock.text_block(f"{calculation['expression']} = {format_number(calculation['result'])}"),
            ContentBlock.structured_block(calculation),
        ],
        structured_content={
            **calculation,
            "num1": num1,
            "num2": num2,
            "operationName": get_operation_name(operation),
        },
        meta={OUTPUT_TEMPLATE_KEY: get_widget_url(RESULT_WIDGET)},
    )


def get_calculator_tools() -> List[ToolDefinition]:
    """Return the calculator tool definitions in registration order."""
    return [
        ToolDefinition(
            name="show_calculator",
            description=(
                "Display the Calcufy calculator interface with operation selection cards "
                "(Add, Subtract, Multiply, Divide)"
            ),
            input_schema=ObjectSchema(),
            handler=handle_show_calculator,
            metadata={
                OUTPUT_TEMPLATE_KEY: get_widget_url(CAROUSEL_WIDGET),
                "category": "Calculator",
                "tags": ["calculator", "math", "arithmetic"],
            },
        ),
        ToolDefinition(
            name="select_operation",
            description="Select a calculator operation and display the input form for two numbers",
            input_schema=ObjectSchema(properties={"operation": OPERATION_SCHEMA}),
            handler=handle_select_operation,
            metadata={
                OUTPUT_TEMPLATE_KEY: get_widget_url(INPUT_WIDGET),
                "category": "Calculator",
                "tags": ["calculator", "operation", "input"],
            },
        ),
        ToolDefinition(
            name="calculate",
            description=(
                "Perform a calculation with two numbers using the selected operation "
                "and display the result"
            ),
            input_schema=ObjectSchema(
                properties={
                    "operation": OPERATION_SCHEMA,
                    "num1": NumberSchema(description="The first number"),
                    "num2": NumberSchema(description="The second number"),
                }
            ),
            handler=handle_calculate,
            metadata={
                OUTPUT_TEMPLATE_KEY: get_widget_url(RESULT_WIDGET),
                "category": "Calculator",
                "tags": ["calculator", "math", "result"],
            },
        ),
    ]


def get_widget_resources() -> Dict[str, ResourceDescriptor]:
    return {
        "calculator-carousel-widget": ResourceDescriptor(
            url=get_widget_url(CAROUSEL_WIDGET),
            description="Calculator operation selection carousel",
        ),
        "calculator-input-widget": ResourceDescriptor(
            url=get_widget_url(INPUT_WIDGET),
            description="Calculator number input form",
        ),
        "result-card-widget": ResourceDescriptor(
            url=get_widget_url(RESULT_WIDGET),
            description="Calculator result display card",
        ),
    }


def create_calculator_registry() -> ToolRegistry:
    """Create a registry holding the calculator tools and their widget resources."""
    registry = ToolRegistry()

    for tool in get_calculator_tools():
        registry.register(tool)

    for name, resource in get_widget_resources().items():
        registry.register_resource(name, resource)

    logger.info(f"Calculator registry initialized with {len(registry)} tools")
    return registry

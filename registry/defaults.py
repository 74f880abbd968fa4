from models import ActionType, ConditionOperator, TriggerType

from .registry import Registry

TRIGGERS = [
    (TriggerType.ON_CREATE, "On Create", "Trigger when new records are created"),
    (TriggerType.ON_UPDATE, "On Update", "Trigger when records are updated"),
    (TriggerType.BOTH, "Create & Update", "Trigger on both create and update"),
    (TriggerType.CRON, "Scheduled", "Run on a schedule using cron"),
]

OPERATORS = [
    (ConditionOperator.EQUALS, "Equals", "Column value equals the given value"),
    (ConditionOperator.NOT_EQUALS, "Not Equals", "Column value differs from the given value"),
    (ConditionOperator.CONTAINS, "Contains", "Column text or list contains the given value"),
    (ConditionOperator.NOT_CONTAINS, "Does Not Contain", "Column text or list lacks the given value"),
    (ConditionOperator.GREATER_THAN, "Greater Than", "Numeric or date column is after the given value"),
    (ConditionOperator.LESS_THAN, "Less Than", "Numeric or date column is before the given value"),
    (ConditionOperator.IS_NULL, "Is Null", "Column has no value"),
    (ConditionOperator.IS_NOT_NULL, "Is Not Null", "Column has a value"),
    (ConditionOperator.STARTS_WITH, "Starts With", "Column text starts with the given value"),
    (ConditionOperator.ENDS_WITH, "Ends With", "Column text ends with the given value"),
    (ConditionOperator.IN, "In (comma separated)", "Column value is one of a comma separated list"),
    (ConditionOperator.NOT_IN, "Not In (comma separated)", "Column value is none of a comma separated list"),
]

ACTIONS = [
    (ActionType.SEND_EMAIL, "Send Email", "Send an email notification"),
    (ActionType.ASSIGN_OWNER, "Assign Owner", "Assign record to a user or team"),
    (ActionType.UPDATE_FIELDS, "Update Fields", "Update specific fields in the record"),
    (ActionType.ADD_TAGS, "Add Tags", "Add tags to the record"),
    (ActionType.MANAGE_TAGS, "Manage Tags", "Add and remove tags on the record"),
    (ActionType.CREATE_ACTIVITY, "Create Activity", "Create a follow-up activity"),
    (ActionType.CREATE_RECORD, "Create Record", "Create a new record in another table"),
    (ActionType.ASSIGN_TASK, "Assign Task", "Create a task and assign it"),
    (ActionType.TRIGGER_WORKFLOW_EVENT, "Trigger Workflow", "Trigger another workflow"),
]


def create_default_registries() -> dict[str, Registry]:
    """Create the trigger, condition operator and action catalogs."""
    trigger_registry = Registry(name="trigger")
    for trigger_type, label, description in TRIGGERS:
        trigger_registry.register(trigger_type.value, label, description)

    condition_registry = Registry(name="condition")
    for operator, label, description in OPERATORS:
        condition_registry.register(operator.value, label, description)

    action_registry = Registry(name="action")
    for action_type, label, description in ACTIONS:
        action_registry.register(action_type.value, label, description)

    return {
        "trigger": trigger_registry,
        "condition": condition_registry,
        "action": action_registry,
    }

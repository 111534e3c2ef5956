"""
Checklist item catalog.

Static description of what a driver inspects before departure: six
categories, each with a closed set of values and the subset of values that
count as a defect. Nothing here is persisted; checklists store the raw value
per item key and derive ok/problem from this catalog.
"""

from dataclasses import dataclass

from django.core.exceptions import ValidationError

from .exceptions import UnknownItem

ITEM_OK = 'ok'
ITEM_PROBLEM = 'problem'


@dataclass(frozen=True)
class ItemOption:
    value: str
    label: str
    color: str


@dataclass(frozen=True)
class ChecklistItemOption:
    key: str
    title: str
    description: str
    options: tuple
    problem_values: frozenset

    def is_problem(self, value):
        return value in self.problem_values

    def has_value(self, value):
        return any(o.value == value for o in self.options)

    def label_for(self, value):
        for option in self.options:
            if option.value == value:
                return option.label
        return value

    @property
    def default_value(self):
        return self.options[0].value


CHECKLIST_ITEMS = (
    ChecklistItemOption(
        key='fuel_level',
        title='Fuel Level',
        description='Check the gauge on the dashboard',
        options=(
            ItemOption('empty', 'Empty', 'red'),
            ItemOption('quarter', '1/4', 'orange'),
            ItemOption('half', '1/2', 'yellow'),
            ItemOption('three_quarter', '3/4', 'lime'),
            ItemOption('full', 'Full', 'green'),
        ),
        problem_values=frozenset({'empty', 'quarter'}),
    ),
    ChecklistItemOption(
        key='tire_pressure',
        title='Tire Pressure',
        description='Look for any visibly flat tire',
        options=(
            ItemOption('ok', 'OK', 'green'),
            ItemOption('low', 'Low', 'orange'),
            ItemOption('needs_check', 'Needs check', 'red'),
        ),
        problem_values=frozenset({'low', 'needs_check'}),
    ),
    ChecklistItemOption(
        key='tire_condition',
        title='Tire Condition',
        description='General state of the tires',
        options=(
            ItemOption('excellent', 'Excellent', 'green'),
            ItemOption('good', 'Good', 'lime'),
            ItemOption('worn', 'Worn', 'orange'),
            ItemOption('needs_replacement', 'Replace', 'red'),
        ),
        problem_values=frozenset({'worn', 'needs_replacement'}),
    ),
    ChecklistItemOption(
        key='lights_status',
        title='Lights and Signals',
        description='Headlights, tail lights, indicators and brake lights',
        options=(
            ItemOption('all_working', 'All working', 'green'),
            ItemOption('some_issues', 'Some issues', 'orange'),
            ItemOption('major_issues', 'Major issues', 'red'),
        ),
        problem_values=frozenset({'some_issues', 'major_issues'}),
    ),
    ChecklistItemOption(
        key='fluid_levels',
        title='Fluid Levels',
        description='Oil, coolant and brake fluid (when accessible)',
        options=(
            ItemOption('ok', 'OK', 'green'),
            ItemOption('low', 'Low', 'orange'),
            ItemOption('needs_refill', 'Refill', 'red'),
        ),
        problem_values=frozenset({'low', 'needs_refill'}),
    ),
    ChecklistItemOption(
        key='documentation',
        title='Documentation',
        description="Vehicle registration and driver's license",
        options=(
            ItemOption('ok', 'OK', 'green'),
            ItemOption('missing', 'Missing', 'red'),
        ),
        problem_values=frozenset({'missing'}),
    ),
)

_ITEMS_BY_KEY = {item.key: item for item in CHECKLIST_ITEMS}


def items():
    return list(CHECKLIST_ITEMS)


def get_item(key):
    try:
        return _ITEMS_BY_KEY[key]
    except KeyError:
        raise UnknownItem(key) from None


def is_problem(key, value):
    return get_item(key).is_problem(value)


def option_label(key, value):
    """Human label for a stored raw value; unknown keys fall back to the raw value."""
    item = _ITEMS_BY_KEY.get(key)
    return item.label_for(value) if item else value


def item_title(key):
    item = _ITEMS_BY_KEY.get(key)
    return item.title if item else key


def validate_values(values):
    """Check a raw key -> value map covers every catalog item with a known value."""
    if not isinstance(values, dict):
        raise ValidationError({'checklist_values': 'Expected a mapping of item key to value.'})

    errors = {}
    for key in values:
        if key not in _ITEMS_BY_KEY:
            errors[key] = 'Unknown checklist item.'
    for item in CHECKLIST_ITEMS:
        if item.key not in values:
            errors[item.key] = 'This item is required.'
        elif not item.has_value(values[item.key]):
            errors[item.key] = f"Invalid value '{values[item.key]}'."
    if errors:
        raise ValidationError(errors)


def classify(values):
    """Map raw values to ok/problem; keys the catalog no longer knows are skipped."""
    result = {}
    for key, value in values.items():
        item = _ITEMS_BY_KEY.get(key)
        if item is None:
            continue
        result[key] = ITEM_PROBLEM if item.is_problem(value) else ITEM_OK
    return result


def problem_keys(values):
    return [key for key, state in classify(values).items() if state == ITEM_PROBLEM]

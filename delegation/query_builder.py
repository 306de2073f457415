"""Builds the sub-query sent to the schema that owns a delegated field.

The selection of the incoming field is copied with three changes:
- named fragment spreads become inline fragments, so the sub-query needs no
  fragment definitions,
- fields added by a FieldExtension are dropped, their required fields are
  selected instead under a "_required_" alias,
- "__typename" is selected on abstract types, so the gateway can resolve them.
Only the variables the sub-query actually uses are declared and sent.
Client queries may not use the generated alias and variable prefixes, see
ReservedNamesRule.
"""
from graphql import (
    ArgumentNode,
    DocumentNode,
    FieldNode,
    FragmentSpreadNode,
    GraphQLError,
    InlineFragmentNode,
    NameNode,
    OperationDefinitionNode,
    OperationType,
    SelectionSetNode,
    ValidationRule,
    VariableDefinitionNode,
    VariableNode,
    Visitor,
    get_named_type,
    is_abstract_type,
    is_composite_type,
    parse_type,
    print_ast,
    visit,
)


REQUIRED_PREFIX = "_required_"
ARGUMENT_PREFIX = "_arg_"

OPERATION_TYPES = {"query": OperationType.QUERY, "mutation": OperationType.MUTATION}


def _name(value):
    return NameNode(value=value)


def _field(name, alias=None, arguments=None, directives=None, selection_set=None):
    return FieldNode(
        alias=_name(alias) if alias else None,
        name=_name(name),
        arguments=arguments or [],
        directives=directives or [],
        selection_set=selection_set,
    )


def _typename():
    return _field("__typename")


def _group_paths(paths):
    grouped = {}
    for path in paths:
        head, _, rest = path.partition(".")
        remainder = grouped.setdefault(head, [])
        if rest and rest not in remainder:
            remainder.append(rest)
    return grouped


def required_selections(paths, alias_prefix=REQUIRED_PREFIX):
    """Turns dotted field paths into field nodes, e.g. "location.city" into
    "_required_location: location { city }".
    """
    selections = []
    for head, remainder in _group_paths(paths).items():
        selections.append(
            _field(
                head,
                alias=f"{alias_prefix}{head}" if alias_prefix else None,
                selection_set=SelectionSetNode(
                    selections=required_selections(remainder, alias_prefix=None)
                )
                if remainder
                else None,
            )
        )
    return selections


class SubQueryBuilder:
    def __init__(self, info, extensions):
        self.info = info
        self.extensions = extensions

    def build(self, operation, field_name, arguments=None, argument_types=None):
        """Returns the printed sub-query and the variables it needs.

        Without ``arguments`` the arguments of the incoming field are copied
        as they are, otherwise every argument becomes a generated variable.
        """
        variable_definitions, variables = [], {}
        if arguments is None:
            argument_nodes = list(self.info.field_nodes[0].arguments)
        else:
            argument_nodes = []
            for name, value in arguments.items():
                variable_name = f"{ARGUMENT_PREFIX}{name}"
                argument_nodes.append(
                    ArgumentNode(
                        name=_name(name),
                        value=VariableNode(name=_name(variable_name)),
                    )
                )
                variable_definitions.append(
                    VariableDefinitionNode(
                        variable=VariableNode(name=_name(variable_name)),
                        type=parse_type(str(argument_types[name])),
                        directives=[],
                    )
                )
                variables[variable_name] = value

        return_type = get_named_type(self.info.return_type)
        selection_set = None
        if is_composite_type(return_type):
            selections = []
            for field_node in self.info.field_nodes:
                if field_node.selection_set:
                    selections.extend(field_node.selection_set.selections)
            selection_set = SelectionSetNode(
                selections=self._transform(selections, return_type)
            )
        root_field = _field(
            field_name, arguments=argument_nodes, selection_set=selection_set
        )

        used = _used_variables(root_field)
        for definition in self.info.operation.variable_definitions or []:
            name = definition.variable.name.value
            if name in used:
                variable_definitions.append(definition)
                if name in self.info.variable_values:
                    variables[name] = self.info.variable_values[name]

        document = DocumentNode(
            definitions=[
                OperationDefinitionNode(
                    operation=OPERATION_TYPES[operation],
                    variable_definitions=variable_definitions,
                    directives=[],
                    selection_set=SelectionSetNode(selections=[root_field]),
                )
            ]
        )
        return print_ast(document), variables

    def _transform(self, selections, parent_type):
        result, required = [], []
        for selection in selections:
            if isinstance(selection, FieldNode):
                name = selection.name.value
                if name.startswith("__"):
                    result.append(selection)
                    continue
                extension = self.extensions.get((parent_type.name, name))
                if extension is not None:
                    required.extend(
                        path for path in extension.required if path not in required
                    )
                    continue
                field = parent_type.fields.get(name)
                if field is None:
                    continue
                selection_set = None
                if selection.selection_set:
                    selection_set = SelectionSetNode(
                        selections=self._transform(
                            selection.selection_set.selections,
                            get_named_type(field.type),
                        )
                    )
                result.append(
                    FieldNode(
                        alias=selection.alias,
                        name=selection.name,
                        arguments=selection.arguments,
                        directives=selection.directives,
                        selection_set=selection_set,
                    )
                )
            elif isinstance(selection, InlineFragmentNode):
                fragment_type = parent_type
                if selection.type_condition:
                    fragment_type = self.info.schema.get_type(
                        selection.type_condition.name.value
                    )
                result.append(
                    self._inline_fragment(
                        selection.type_condition,
                        selection.directives,
                        selection.selection_set.selections,
                        fragment_type,
                    )
                )
            elif isinstance(selection, FragmentSpreadNode):
                fragment = self.info.fragments[selection.name.value]
                result.append(
                    self._inline_fragment(
                        fragment.type_condition,
                        selection.directives,
                        fragment.selection_set.selections,
                        self.info.schema.get_type(fragment.type_condition.name.value),
                    )
                )
        result.extend(required_selections(required))
        if is_abstract_type(parent_type) or not result:
            result.append(_typename())
        return result

    def _inline_fragment(self, type_condition, directives, selections, fragment_type):
        return InlineFragmentNode(
            type_condition=type_condition,
            directives=directives,
            selection_set=SelectionSetNode(
                selections=self._transform(selections, fragment_type)
            ),
        )


def _used_variables(node):
    used = set()

    class VariableCollector(Visitor):
        def enter_variable(self, variable, *args):
            used.add(variable.name.value)

    visit(node, VariableCollector())
    return used


class ReservedNamesRule(ValidationRule):
    """Rejects client aliases and variables named like the generated ones."""

    def enter_field(self, node, *_args):
        if node.alias and node.alias.value.startswith(REQUIRED_PREFIX):
            self.report_error(
                GraphQLError(
                    f"Alias '{node.alias.value}' is reserved, aliases cannot "
                    f"start with '{REQUIRED_PREFIX}'",
                    node,
                )
            )

    def enter_variable_definition(self, node, *_args):
        name = node.variable.name.value
        if name.startswith(ARGUMENT_PREFIX):
            self.report_error(
                GraphQLError(
                    f"Variable '${name}' is reserved, variables cannot "
                    f"start with '{ARGUMENT_PREFIX}'",
                    node,
                )
            )

"""
Device Graph Model
==================
A small, read-mostly model of a microfluidic schematic: typed nodes with named
ports, directed connections between ports, and typed constraint instances.
Types form single-inheritance chains; strategies match by subtype.

Values compare by identity. Names live in the owning Schematic, which offers
reverse lookups (node -> name) the way symbol generation needs them.

The graph is never mutated by the backend. Solved values are written through a
SchematicBuilder, which returns a new Schematic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple


class UndeclaredIdentifierError(KeyError):
    """Raised when a type, port or instance name is not declared."""
    def __init__(self, identifier: str, kind: str = "identifier"):
        self.identifier = identifier
        self.kind = kind
        super().__init__(identifier)

    def __str__(self):
        return f"undeclared {self.kind} '{self.identifier}'"


class UndeclaredAttributeError(KeyError):
    def __init__(self, attribute: str, owner: str = ""):
        self.attribute = attribute
        self.owner = owner
        super().__init__(attribute)

    def __str__(self):
        where = f" on {self.owner}" if self.owner else ""
        return f"undeclared attribute '{self.attribute}'{where}"


class MultipleDefinitionError(ValueError):
    pass


# ============================================================================
# TYPES
# ============================================================================

@dataclass(eq=False)
class TypeDef:
    """
    A named type with an optional supertype.

    For node types, ``ports`` maps port name -> port type; ports declared on a
    supertype are inherited.
    """
    name: str
    supertype: Optional["TypeDef"] = None
    ports: Dict[str, "TypeDef"] = field(default_factory=dict)

    def is_subtype_of(self, other: Optional["TypeDef"]) -> bool:
        if other is None:
            return False
        t: Optional[TypeDef] = self
        while t is not None:
            if t is other:
                return True
            t = t.supertype
        return False

    def all_ports(self) -> Dict[str, "TypeDef"]:
        inherited = self.supertype.all_ports() if self.supertype is not None else {}
        return {**inherited, **self.ports}

    def __repr__(self):
        return f"TypeDef({self.name!r})"


# ============================================================================
# VALUES
# ============================================================================

class _Attributed:
    type: TypeDef
    attributes: Dict[str, Any]

    def get_attribute(self, name: str) -> Any:
        if name not in self.attributes:
            raise UndeclaredAttributeError(name, self.type.name)
        return self.attributes[name]

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes


class Port(_Attributed):
    def __init__(self, name: str, port_type: TypeDef, parent: "Node",
                 attributes: Optional[Dict[str, Any]] = None):
        self.name = name
        self.type = port_type
        self.parent = parent
        self.attributes = dict(attributes or {})

    def __repr__(self):
        return f"Port({self.name!r})"


class Node(_Attributed):
    def __init__(self, node_type: TypeDef, attributes: Optional[Dict[str, Any]] = None,
                 port_attributes: Optional[Dict[str, Dict[str, Any]]] = None):
        self.type = node_type
        self.attributes = dict(attributes or {})
        port_attributes = port_attributes or {}
        self.ports: Dict[str, Port] = {
            pname: Port(pname, ptype, self, port_attributes.get(pname))
            for pname, ptype in node_type.all_ports().items()
        }

    def get_port(self, name: str) -> Port:
        port = self.ports.get(name)
        if port is None:
            raise UndeclaredIdentifierError(name, "port")
        return port

    def __repr__(self):
        return f"Node({self.type.name!r})"


class Connection(_Attributed):
    """A directed edge; the (from -> to) orientation is the canonical direction."""
    def __init__(self, connection_type: TypeDef, from_port: Port, to_port: Port,
                 attributes: Optional[Dict[str, Any]] = None):
        self.type = connection_type
        self.from_port = from_port
        self.to_port = to_port
        self.attributes = dict(attributes or {})

    def touches(self, port: Port) -> bool:
        return self.from_port is port or self.to_port is port

    def __repr__(self):
        return f"Connection({self.type.name!r})"


class ConstraintValue(_Attributed):
    """A typed constraint instance; attributes may reference nodes and connections."""
    def __init__(self, constraint_type: TypeDef, attributes: Optional[Dict[str, Any]] = None):
        self.type = constraint_type
        self.attributes = dict(attributes or {})

    def __repr__(self):
        return f"ConstraintValue({self.type.name!r})"


# ============================================================================
# SCHEMATIC
# ============================================================================

class Schematic:
    def __init__(self, name: str):
        self.name = name
        self.port_types: Dict[str, TypeDef] = {}
        self.node_types: Dict[str, TypeDef] = {}
        self.connection_types: Dict[str, TypeDef] = {}
        self.constraint_types: Dict[str, TypeDef] = {}

        self.nodes: Dict[str, Node] = {}
        self.connections: Dict[str, Connection] = {}
        self.constraints: Dict[str, ConstraintValue] = {}

        self._names: Dict[int, str] = {}

    # -----------------------------
    # Types
    # -----------------------------
    def add_port_type(self, name: str, t: TypeDef) -> TypeDef:
        return self._add(self.port_types, name, t, "port type")

    def add_node_type(self, name: str, t: TypeDef) -> TypeDef:
        return self._add(self.node_types, name, t, "node type")

    def add_connection_type(self, name: str, t: TypeDef) -> TypeDef:
        return self._add(self.connection_types, name, t, "connection type")

    def add_constraint_type(self, name: str, t: TypeDef) -> TypeDef:
        return self._add(self.constraint_types, name, t, "constraint type")

    def get_port_type(self, name: str) -> TypeDef:
        return self._get(self.port_types, name, "port type")

    def get_node_type(self, name: str) -> TypeDef:
        return self._get(self.node_types, name, "node type")

    def get_connection_type(self, name: str) -> TypeDef:
        return self._get(self.connection_types, name, "connection type")

    def get_constraint_type(self, name: str) -> TypeDef:
        return self._get(self.constraint_types, name, "constraint type")

    # -----------------------------
    # Instances
    # -----------------------------
    def add_node(self, name: str, node: Node) -> Node:
        self._names[id(node)] = name
        return self._add(self.nodes, name, node, "node")

    def add_connection(self, name: str, conn: Connection) -> Connection:
        self._names[id(conn)] = name
        return self._add(self.connections, name, conn, "connection")

    def add_constraint(self, name: str, cxt: ConstraintValue) -> ConstraintValue:
        self._names[id(cxt)] = name
        return self._add(self.constraints, name, cxt, "constraint")

    def get_node(self, name: str) -> Node:
        return self._get(self.nodes, name, "node")

    def get_connection(self, name: str) -> Connection:
        return self._get(self.connections, name, "connection")

    def get_constraint(self, name: str) -> ConstraintValue:
        return self._get(self.constraints, name, "constraint")

    def name_of(self, value: Any) -> str:
        """Reverse lookup for nodes, connections and constraints."""
        name = self._names.get(id(value))
        if name is None:
            raise UndeclaredIdentifierError(repr(value), "instance")
        return name

    def connection_at(self, port: Port) -> Optional[Connection]:
        """The first connection whose from or to end is ``port``."""
        for conn in self.connections.values():
            if conn.touches(port):
                return conn
        return None

    def iter_nodes_of(self, t: Optional[TypeDef]) -> Iterator[Tuple[str, Node]]:
        for name, node in self.nodes.items():
            if node.type.is_subtype_of(t):
                yield name, node

    def iter_constraints_of(self, t: Optional[TypeDef]) -> Iterator[Tuple[str, ConstraintValue]]:
        for name, cxt in self.constraints.items():
            if cxt.type.is_subtype_of(t):
                yield name, cxt

    # -----------------------------
    # internals
    # -----------------------------
    def _add(self, table: Dict[str, Any], name: str, value: Any, kind: str):
        if name in table:
            raise MultipleDefinitionError(f"{kind} '{name}' is already defined")
        table[name] = value
        return value

    def _get(self, table: Dict[str, Any], name: str, kind: str):
        if name not in table:
            raise UndeclaredIdentifierError(name, kind)
        return table[name]

    def copy_types_into(self, other: "Schematic") -> None:
        other.port_types.update(self.port_types)
        other.node_types.update(self.node_types)
        other.connection_types.update(self.connection_types)
        other.constraint_types.update(self.constraint_types)

    def __repr__(self):
        return (f"Schematic({self.name!r}, nodes={len(self.nodes)}, "
                f"connections={len(self.connections)}, constraints={len(self.constraints)})")


# ============================================================================
# BUILDER
# ============================================================================

class SchematicBuilder:
    """
    Collects attribute writes against an existing schematic and produces an
    updated copy. The source schematic is left untouched.

    Usage:
        builder = SchematicBuilder(schematic)
        builder.set_node_attribute("n1", "pos_x", 0.01)
        updated = builder.build()
    """

    def __init__(self, source: Schematic):
        self.source = source
        self._node_writes: Dict[str, Dict[str, Any]] = {}
        self._port_writes: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._connection_writes: Dict[str, Dict[str, Any]] = {}
        self._constraint_writes: Dict[str, Dict[str, Any]] = {}

    def set_node_attribute(self, node: str, attribute: str, value: Any) -> "SchematicBuilder":
        self.source.get_node(node)
        self._node_writes.setdefault(node, {})[attribute] = value
        return self

    def set_port_attribute(self, node: str, port: str, attribute: str, value: Any) -> "SchematicBuilder":
        self.source.get_node(node).get_port(port)
        self._port_writes.setdefault((node, port), {})[attribute] = value
        return self

    def set_connection_attribute(self, connection: str, attribute: str, value: Any) -> "SchematicBuilder":
        self.source.get_connection(connection)
        self._connection_writes.setdefault(connection, {})[attribute] = value
        return self

    def set_constraint_attribute(self, constraint: str, attribute: str, value: Any) -> "SchematicBuilder":
        self.source.get_constraint(constraint)
        self._constraint_writes.setdefault(constraint, {})[attribute] = value
        return self

    @property
    def pending_writes(self) -> int:
        groups = (self._node_writes, self._port_writes,
                  self._connection_writes, self._constraint_writes)
        return sum(len(w) for g in groups for w in g.values())

    def build(self) -> Schematic:
        src = self.source
        out = Schematic(src.name)
        src.copy_types_into(out)
        remap: Dict[int, Any] = {}

        for name, node in src.nodes.items():
            attrs = {**node.attributes, **self._node_writes.get(name, {})}
            port_attrs = {
                pname: {**port.attributes, **self._port_writes.get((name, pname), {})}
                for pname, port in node.ports.items()
            }
            copy = Node(node.type, attrs, port_attrs)
            remap[id(node)] = copy
            for pname, port in node.ports.items():
                remap[id(port)] = copy.ports[pname]
            out.add_node(name, copy)

        for name, conn in src.connections.items():
            attrs = {**conn.attributes, **self._connection_writes.get(name, {})}
            copy = Connection(conn.type, remap[id(conn.from_port)], remap[id(conn.to_port)],
                              _remap_values(attrs, remap))
            remap[id(conn)] = copy
            out.add_connection(name, copy)

        for name, cxt in src.constraints.items():
            attrs = {**cxt.attributes, **self._constraint_writes.get(name, {})}
            out.add_constraint(name, ConstraintValue(cxt.type, _remap_values(attrs, remap)))

        return out


def _remap_values(attrs: Dict[str, Any], remap: Dict[int, Any]) -> Dict[str, Any]:
    return {k: remap.get(id(v), v) if isinstance(v, (Node, Port, Connection)) else v
            for k, v in attrs.items()}

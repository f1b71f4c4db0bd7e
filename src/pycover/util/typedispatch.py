"""Type-based dispatch system for pycover.

This module provides a type-based dispatch system that allows methods to be
selected based on the runtime type of their first argument. Syntax tree
walkers use it as a closed match over node classes: every handled class is
declared with `@dispatch`, and a mandatory `@defaultdispatch` handler catches
everything else.
"""

__all__ = [
    "TypeDispatcher",
    "defaultdispatch",
    "dispatch",
    "TypeDispatchError",
    "TypeDispatchDeclarationError",
]

import inspect


class TypeDispatchError(Exception):
    """Raised when a dispatcher is called with a type it cannot handle."""
    pass


class TypeDispatchDeclarationError(Exception):
    """
    Raised when type dispatch is incorrectly declared.

    This is raised during class definition if:
    - Multiple handlers are declared for the same type
    - No default handler is provided
    - Invalid type objects are used in @dispatch decorators
    """
    pass


def flattenTypesInto(l, result):
    """Flatten nested type lists into a flat list.

    ``None`` entries are skipped, so optional classes that only exist on some
    interpreter versions can be listed as ``getattr(ast, "TryStar", None)``.

    Raises:
        TypeDispatchDeclarationError: If non-type objects are found.
    """
    for child in l:
        if child is None:
            continue
        if isinstance(child, (list, tuple)):
            flattenTypesInto(child, result)
        else:
            if not isinstance(child, type):
                raise TypeDispatchDeclarationError(
                    "Expected a type, got %r instead." % child
                )
            result.append(child)


def dispatch(*types):
    """Decorator marking a method as the handler for `types`."""
    def dispatchF(f):
        handled = []
        flattenTypesInto(types, handled)
        f.__dispatch__ = tuple(handled)
        return f

    return dispatchF


def defaultdispatch(f):
    """Decorator marking the fallback handler used when no type matches."""
    f.__dispatch__ = (None,)
    return f


def dispatch__call__(self, p, *args):
    """
    Dispatch a call based on the type of the first argument.

    The exact type is looked up first; on a miss the method resolution order
    is searched for the closest handled superclass, falling back to the
    default handler. The result of the search is cached per type.
    """
    t = type(p)
    table = self.__typeDispatchTable__

    func = table.get(t)

    if func is None:
        for supercls in t.mro():
            func = table.get(supercls)
            if func is not None:
                break

        if func is None:
            func = table[None]

        table[t] = func

    return func(self, p, *args)


class typedispatcher(type):
    """
    Metaclass that builds type dispatch tables for TypeDispatcher classes.

    The table maps each declared type to its handler and is stored in
    ``__typeDispatchTable__``. The declared (uncached) types are kept in
    ``__declaredTypes__`` so callers can check a dispatcher's coverage of a
    closed set of classes.
    """
    def __new__(self, name, bases, d):
        lut = {}

        for k, v in d.items():
            types = getattr(v, "__dispatch__", None)
            if types is None or not callable(v):
                continue
            for t in types:
                if t in lut:
                    raise TypeDispatchDeclarationError(
                        "%s has declared with multiple handlers for type %s"
                        % (name, "default" if t is None else t.__name__)
                    )
                lut[t] = v

        # Inherit handlers that were not redeclared.
        for base in bases:
            for t in inspect.getmro(base):
                declared = t.__dict__.get("__declaredTypes__")
                if declared is None:
                    continue
                for k, v in declared.items():
                    if k not in lut:
                        lut[k] = v

        if None not in lut:
            raise TypeDispatchDeclarationError("%s has no default dispatch" % (name,))

        d["__declaredTypes__"] = dict(lut)
        d["__typeDispatchTable__"] = lut

        return type.__new__(self, name, bases, d)


def exceptionDefault(self, node, *args):
    raise TypeDispatchError("%r cannot handle %r\n%r" % (type(self), type(node), node))


class TypeDispatcher(object, metaclass=typedispatcher):
    """
    Base class for type-based method dispatch.

    Usage:
        1. Inherit from TypeDispatcher
        2. Decorate methods with @dispatch(Type, ...) for specific types
        3. Decorate one method with @defaultdispatch for the fallback
        4. Call the dispatcher with a node

    Example:
        >>> class Kinds(TypeDispatcher):
        ...     @dispatch(int)
        ...     def visitInt(self, obj):
        ...         return "integer"
        ...     @defaultdispatch
        ...     def visitOther(self, obj):
        ...         return "other"
        >>> Kinds()(42), Kinds()("42")
        ('integer', 'other')
    """
    __call__ = dispatch__call__
    exceptionDefault = defaultdispatch(exceptionDefault)

    @classmethod
    def handledTypes(cls):
        """Types with an explicit (non-default) handler."""
        return frozenset(t for t in cls.__declaredTypes__ if t is not None)

    @classmethod
    def handlerFor(cls, t):
        """The handler that would be selected for instances of `t`."""
        for supercls in t.mro():
            func = cls.__declaredTypes__.get(supercls)
            if func is not None:
                return func
        return cls.__declaredTypes__[None]

'''Serialization of configuration objects and tabulation results.

Objects decorated with :func:`simple_serialization` gain a ``to_dict()``
method producing a JSON-ready dictionary that names their class, so that
:func:`from_dict` can reconstruct them later. This is how a tabulation
configuration is stored alongside its results for audit.

Values that JSON cannot represent directly (fractions, UUID candidate
identifiers, tuples and mappings with non-string keys) are stored as typed
objects naming their type, which must be one of the supported ones when
read back.
'''

import uuid
import inspect
import builtins
import importlib
from fractions import Fraction
from typing import Any, List, Dict, Callable


def simple_serialization(class_: type) -> type:
    '''A decorator to provide a simple to_dict() serialization method.

    The resulting method will serialize all object attributes corresponding
    to the class's constructor parameter names (or to the names listed in
    the ``serialize_params`` class attribute, if present).

    :param class_: The class to add the method to.
    '''
    if hasattr(class_, 'serialize_params'):
        param_names = class_.serialize_params
    else:
        param_names = [
            name for name in inspect.signature(class_.__init__).parameters
            if name != 'self'
        ]

    def to_dict(self) -> Dict[str, Any]:
        out_dict = {'class': scoped_class_name(self)}
        for attr in param_names:
            out_dict[attr] = serialize_value(getattr(self, attr))
        return out_dict

    class_.to_dict = to_dict
    return class_


def serialize_value(value: Any) -> Any:
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    elif isinstance(value, tuple(ATOMIC_TYPES)):
        return value
    elif type(value) in CONVERTIBLE_TYPES:
        return CONVERTIBLE_TYPES[type(value)](value)
    elif hasattr(value, 'items') and hasattr(value, 'keys'):
        if all(isinstance(key, str) for key in value.keys()):
            return {key: serialize_value(val) for key, val in value.items()}
        else:
            return {
                'type': 'dict',
                'keys': [serialize_value(key) for key in value.keys()],
                'values': [serialize_value(val) for val in value.values()],
            }
    elif hasattr(value, '__iter__'):
        return [serialize_value(val) for val in value]
    elif callable(value):
        return {'callable': '.'.join((value.__module__, value.__name__))}
    else:
        raise ValueError(f'cannot serialize {value!r} to dict format')


def deserialize_value(value: Any) -> Any:
    if isinstance(value, dict):
        if 'type' in value and is_scoped_identifier(value['type']):
            return deserialize_typed(value)
        elif 'class' in value and is_scoped_identifier(value['class']):
            return deserialize_class(value)
        elif 'callable' in value and is_scoped_identifier(value['callable']):
            return get_object(value['callable'])
        else:
            return {key: deserialize_value(val) for key, val in value.items()}
    elif isinstance(value, tuple(ATOMIC_TYPES)):
        return value
    elif isinstance(value, list):
        return [deserialize_value(val) for val in value]
    else:
        raise ValueError(f'cannot deserialize {value!r}, type unknown')


def deserialize_typed(typedef: Dict[str, Any]) -> Any:
    type_id = typedef['type']
    typeobj = get_object(type_id)
    if typeobj is not dict and typeobj not in CONVERTIBLE_TYPES:
        raise ValueError(f'unsupported typed value: {type_id}')
    if typeobj is dict:
        return dict(zip(
            [deserialize_value(key) for key in typedef['keys']],
            [deserialize_value(val) for val in typedef['values']]
        ))
    elif 'value' in typedef:
        return typeobj(deserialize_value(typedef['value']))
    elif 'arguments' in typedef:
        return typeobj(*[
            deserialize_value(val) for val in typedef['arguments']
        ])
    else:
        raise ValueError(f'invalid typed value contents: {typedef!r}')


def deserialize_class(clsdef: Dict[str, Any]) -> Any:
    cls = get_object(clsdef['class'])
    params = {
        key: deserialize_value(val)
        for key, val in clsdef.items() if key != 'class'
    }
    if hasattr(cls, 'from_dict'):
        return cls.from_dict(params)
    else:
        return cls(**params)


def get_object(identifier: str) -> Any:
    if '.' not in identifier:
        return getattr(builtins, identifier)
    module, name = identifier.rsplit('.', 1)
    return getattr(importlib.import_module(module), name)


def from_dict(value: Dict[str, Any]) -> Any:
    '''Rebuild a configuration object from a JSON-like dictionary.

    :param value: A dictionary created by :func:`to_dict`.
    '''
    if not isinstance(value, dict):
        raise ValueError('invalid rankchoice object def: dict expected,'
                         f' got {value!r}')
    elif 'class' not in value:
        raise ValueError(
            'invalid rankchoice object def: must have a class key'
        )
    elif not is_scoped_identifier(value['class']):
        inval_cls = value['class']
        raise ValueError(f'invalid rankchoice class def: {inval_cls}')
    else:
        return deserialize_value(value)


def to_dict(obj: Any) -> Dict[str, Any]:
    '''Serialize a configuration or result object to a JSON-ready dictionary.

    :param obj: An object providing a `to_dict()` method, such as a tie
        breaker, a ballot validator, a tabulator or a tabulation result.
    '''
    return serialize_value(obj)


def is_scoped_identifier(value: Any) -> bool:
    return (
        isinstance(value, str)
        and not value.startswith('.')
        and all(chunk.isidentifier() for chunk in value.split('.'))
    )


def scoped_class_name(value: Any) -> str:
    cls = value.__class__
    return '.'.join((cls.__module__, cls.__name__))


def type_name(typeobj: type) -> str:
    if typeobj.__module__ == 'builtins':
        return typeobj.__name__
    return '.'.join((typeobj.__module__, typeobj.__name__))


def fraction_to_json(f: Fraction) -> Dict[str, Any]:
    return {
        'type': type_name(Fraction),
        'arguments': [f.numerator, f.denominator],
    }


def uuid_to_json(u: uuid.UUID) -> Dict[str, Any]:
    # candidate identifiers are commonly UUIDs
    return {'type': type_name(uuid.UUID), 'value': str(u)}


def sequence_to_json_factory(typeobj):
    typename = type_name(typeobj)

    def sequence_to_json(seq) -> Dict[str, Any]:
        return {'type': typename, 'value': [serialize_value(v) for v in seq]}

    return sequence_to_json


ATOMIC_TYPES: List[type] = [
    str, int, float, bool, type(None),
]

CONVERTIBLE_TYPES: Dict[type, Callable] = {
    Fraction: fraction_to_json,
    uuid.UUID: uuid_to_json,
}

SEQUENCE_TYPES: List[type] = [frozenset, tuple]

for seqtype in SEQUENCE_TYPES:
    CONVERTIBLE_TYPES[seqtype] = sequence_to_json_factory(seqtype)

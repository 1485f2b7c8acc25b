class ResolverError(Exception):
    "Base class for errors raised by the property resolver."


class InvalidArgumentError(ResolverError, ValueError):
    "A malformed entity, property name or values argument was supplied."


class CompoundNestingError(ResolverError):
    "A compound property declares a dependent that is itself compound."


class FormulaError(ResolverError):
    "A formula could not be parsed or uses an unsupported construct."

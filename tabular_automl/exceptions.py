# tabular_automl/exceptions.py


class PipelineError(Exception):
    """Base class for every terminal error raised by the pipeline"""


class SchemaError(PipelineError):
    """Malformed or missing schema fields, or ambiguous role assignment"""


class EmptyColumnError(PipelineError):
    """A nullable column has no non-null values to compute a fill value from"""


class DuplicateInputNameError(PipelineError):
    """Non-unique column names reached the name sanitizer"""


class DegenerateScaleError(PipelineError):
    """A numeric column has zero or non-finite standard deviation"""


class SchemaMismatchError(PipelineError):
    """Data disagrees with the columns recorded at fit time"""


class UnknownColumnError(SchemaMismatchError):
    """A column has no entry in the persisted name mapping"""


class UnseenLabelError(PipelineError):
    """A target label is absent from the fit-time vocabulary"""


class UnsupportedModelCategoryError(PipelineError):
    """The schema asks for a model category the trainer cannot fit"""


class MissingArtifactError(PipelineError):
    """An artifact directory is incomplete or was never committed"""

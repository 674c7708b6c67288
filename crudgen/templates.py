# File: crudgen/templates.py
"""
CrudGen - Template Store & Renderer
====================================
Templates are plain text with ``{{placeholder}}`` markers.  Rendering is a
single regex pass: every marker whose name is in the context is replaced,
substituted text is never re-scanned, and markers the context does not
cover are left verbatim (logged as a warning, or rejected in strict mode).

Each artifact template declares the placeholders it needs in
``TEMPLATE_PLACEHOLDERS``.  A context that lacks one of them is a bug in
the caller and fails with ``TemplateContextError`` before any substitution
happens.

Stores:
    - ``BuiltinTemplateStore``    — the stubs shipped with CrudGen.
    - ``DirectoryTemplateStore``  — ``*.stub`` files in a project directory.
    - ``LayeredTemplateStore``    — first store that has the template wins.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, List, Mapping, Optional, Protocol, Sequence, Set, Union

from crudgen.exceptions import ConfigError, TemplateContextError, TemplateNotFound
from crudgen.models import GenerationConfig, TemplateName
from crudgen.utils import read_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.templates")

# ---------------------------------------------------------------------------
# Placeholder grammar
# ---------------------------------------------------------------------------

_PLACEHOLDER_RE: re.Pattern[str] = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")

TemplateKey = Union[str, TemplateName]

TEMPLATE_PLACEHOLDERS: Dict[str, FrozenSet[str]] = {
    TemplateName.MODEL.value: frozenset({
        "modelNamespace", "modelName", "tableName", "fillable", "relations",
    }),
    TemplateName.MIGRATION.value: frozenset({"tableName", "fields"}),
    TemplateName.PIVOT_MIGRATION.value: frozenset({
        "pivotTableName", "foreignKey", "relatedKey",
    }),
    TemplateName.CONTROLLER.value: frozenset({
        "controllerName", "modelName", "modelNamespace", "modelVariable",
        "storeRequestName", "updateRequestName",
    }),
    TemplateName.STORE_REQUEST.value: frozenset({"formRequestName", "rules"}),
    TemplateName.UPDATE_REQUEST.value: frozenset({"formRequestName", "rules"}),
}

# File names a stub directory uses for each template
STUB_FILENAMES: Dict[str, str] = {
    TemplateName.MODEL.value: "model.stub",
    TemplateName.MIGRATION.value: "migration.stub",
    TemplateName.PIVOT_MIGRATION.value: "pivot_migration.stub",
    TemplateName.CONTROLLER.value: "controller.stub",
    TemplateName.STORE_REQUEST.value: "StoreRequest.stub",
    TemplateName.UPDATE_REQUEST.value: "UpdateRequest.stub",
}


def template_key(name: TemplateKey) -> str:
    """Normalise a ``TemplateName`` or plain string to the store key."""
    if isinstance(name, Enum):
        return str(name.value)
    return name


def find_placeholders(text: str) -> List[str]:
    """Placeholder names in *text*, in order of first appearance."""
    seen: Dict[str, None] = {}
    for match in _PLACEHOLDER_RE.finditer(text):
        seen.setdefault(match.group(1), None)
    return list(seen)


# ---------------------------------------------------------------------------
# Built-in stubs
# ---------------------------------------------------------------------------

_MODEL_STUB: str = r"""<?php

namespace {{modelNamespace}};

use Illuminate\Database\Eloquent\Factories\HasFactory;
use Illuminate\Database\Eloquent\Model;

class {{modelName}} extends Model
{
    use HasFactory;

    protected $table = '{{tableName}}';

    protected $fillable = [{{fillable}}];
{{relations}}}
"""

_MIGRATION_STUB: str = r"""<?php

use Illuminate\Database\Migrations\Migration;
use Illuminate\Database\Schema\Blueprint;
use Illuminate\Support\Facades\Schema;

return new class extends Migration
{
    public function up(): void
    {
        Schema::create('{{tableName}}', function (Blueprint $table) {
            $table->id();
            {{fields}}
            $table->timestamps();
        });
    }

    public function down(): void
    {
        Schema::dropIfExists('{{tableName}}');
    }
};
"""

_PIVOT_MIGRATION_STUB: str = r"""<?php

use Illuminate\Database\Migrations\Migration;
use Illuminate\Database\Schema\Blueprint;
use Illuminate\Support\Facades\Schema;

return new class extends Migration
{
    public function up(): void
    {
        Schema::create('{{pivotTableName}}', function (Blueprint $table) {
            $table->foreignId('{{foreignKey}}');
            $table->foreignId('{{relatedKey}}');
            $table->primary(['{{foreignKey}}', '{{relatedKey}}']);
        });
    }

    public function down(): void
    {
        Schema::dropIfExists('{{pivotTableName}}');
    }
};
"""

_CONTROLLER_STUB: str = r"""<?php

namespace App\Http\Controllers;

use App\Http\Requests\{{storeRequestName}};
use App\Http\Requests\{{updateRequestName}};
use {{modelNamespace}}\{{modelName}};

class {{controllerName}} extends Controller
{
    public function index()
    {
        return {{modelName}}::paginate();
    }

    public function store({{storeRequestName}} $request)
    {
        ${{modelVariable}} = {{modelName}}::create($request->validated());

        return response()->json(${{modelVariable}}, 201);
    }

    public function show({{modelName}} ${{modelVariable}})
    {
        return ${{modelVariable}};
    }

    public function update({{updateRequestName}} $request, {{modelName}} ${{modelVariable}})
    {
        ${{modelVariable}}->update($request->validated());

        return ${{modelVariable}};
    }

    public function destroy({{modelName}} ${{modelVariable}})
    {
        ${{modelVariable}}->delete();

        return response()->noContent();
    }
}
"""

_REQUEST_STUB: str = r"""<?php

namespace App\Http\Requests;

use Illuminate\Foundation\Http\FormRequest;

class {{formRequestName}} extends FormRequest
{
    public function authorize(): bool
    {
        return true;
    }

    public function rules(): array
    {
        return [
            {{rules}}
        ];
    }
}
"""

BUILTIN_STUBS: Dict[str, str] = {
    TemplateName.MODEL.value: _MODEL_STUB,
    TemplateName.MIGRATION.value: _MIGRATION_STUB,
    TemplateName.PIVOT_MIGRATION.value: _PIVOT_MIGRATION_STUB,
    TemplateName.CONTROLLER.value: _CONTROLLER_STUB,
    TemplateName.STORE_REQUEST.value: _REQUEST_STUB,
    TemplateName.UPDATE_REQUEST.value: _REQUEST_STUB,
}


# ---------------------------------------------------------------------------
# Template stores
# ---------------------------------------------------------------------------


class TemplateStore(Protocol):
    """Supplies raw template text by name."""

    def get_template(self, name: TemplateKey) -> str: ...

    def has_template(self, name: TemplateKey) -> bool: ...


class BuiltinTemplateStore:
    """In-memory store, by default holding the packaged stubs."""

    def __init__(self, templates: Optional[Mapping[str, str]] = None) -> None:
        self._templates: Dict[str, str] = dict(BUILTIN_STUBS if templates is None else templates)

    def has_template(self, name: TemplateKey) -> bool:
        return template_key(name) in self._templates

    def get_template(self, name: TemplateKey) -> str:
        key: str = template_key(name)
        try:
            return self._templates[key]
        except KeyError:
            raise TemplateNotFound(key, searched=["<builtin>"]) from None

    def __repr__(self) -> str:
        return f"<BuiltinTemplateStore {sorted(self._templates)}>"


class DirectoryTemplateStore:
    """
    Reads ``<directory>/<file>.stub``.

    File names follow ``STUB_FILENAMES``; a template name without an entry
    there is looked up as ``<name>.stub``.
    """

    def __init__(
        self,
        directory: Path,
        filenames: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._directory: Path = Path(directory)
        self._filenames: Dict[str, str] = dict(STUB_FILENAMES if filenames is None else filenames)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, name: TemplateKey) -> Path:
        key: str = template_key(name)
        return self._directory / self._filenames.get(key, f"{key}.stub")

    def has_template(self, name: TemplateKey) -> bool:
        return self.path_for(name).is_file()

    def get_template(self, name: TemplateKey) -> str:
        key: str = template_key(name)
        path: Path = self.path_for(key)
        if not path.is_file():
            raise TemplateNotFound(key, searched=[str(path)])
        try:
            text: str = read_file(path)
        except (OSError, UnicodeDecodeError) as exc:
            raise TemplateNotFound(key, searched=[f"{path} ({exc})"]) from exc
        logger.debug("Loaded template '%s' from %s (%d chars).", key, path, len(text))
        return text

    def __repr__(self) -> str:
        return f"<DirectoryTemplateStore {self._directory}>"


class LayeredTemplateStore:
    """Consults each store in order; the first that has the template wins."""

    def __init__(self, *stores: TemplateStore) -> None:
        if not stores:
            raise ValueError("LayeredTemplateStore needs at least one store.")
        self._stores: Sequence[TemplateStore] = stores

    def has_template(self, name: TemplateKey) -> bool:
        return any(store.has_template(name) for store in self._stores)

    def get_template(self, name: TemplateKey) -> str:
        key: str = template_key(name)
        searched: List[str] = []
        for store in self._stores:
            try:
                return store.get_template(key)
            except TemplateNotFound as exc:
                searched.extend(exc.searched or [repr(store)])
        raise TemplateNotFound(key, searched=searched)

    def __repr__(self) -> str:
        return f"<LayeredTemplateStore {list(self._stores)!r}>"


def build_template_store(config: GenerationConfig) -> TemplateStore:
    """
    Assemble the store described by *config*.

    Custom stubs shadow the built-ins when ``use_builtin_stubs`` is on;
    otherwise the stub directory must supply every template.
    """
    if config.stubs_dir is None:
        return BuiltinTemplateStore()

    directory: Path = Path(config.stubs_dir)
    if not directory.is_absolute():
        directory = Path(config.project_root) / directory
    if not directory.is_dir():
        raise ConfigError(f"Stub directory does not exist: {directory}", path=directory)

    custom: DirectoryTemplateStore = DirectoryTemplateStore(directory)
    if config.use_builtin_stubs:
        return LayeredTemplateStore(custom, BuiltinTemplateStore())
    return custom


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """
    Stateless placeholder substitution over a template store.

    Thread-safe: no mutable instance state.
    """

    def __init__(
        self,
        store: TemplateStore,
        *,
        strict_placeholders: bool = False,
        placeholders: Optional[Mapping[str, FrozenSet[str]]] = None,
    ) -> None:
        self._store: TemplateStore = store
        self._strict: bool = strict_placeholders
        self._placeholders: Mapping[str, FrozenSet[str]] = (
            TEMPLATE_PLACEHOLDERS if placeholders is None else placeholders
        )

    @property
    def store(self) -> TemplateStore:
        return self._store

    def required_placeholders(self, name: TemplateKey) -> FrozenSet[str]:
        return self._placeholders.get(template_key(name), frozenset())

    def render(self, name: TemplateKey, context: Mapping[str, str]) -> str:
        """
        Fetch template *name* and substitute *context* into it.

        Raises:
            TemplateNotFound: the store has no such template.
            TemplateContextError: *context* lacks a declared placeholder, or
                (strict mode) the template uses one the context lacks.
        """
        key: str = template_key(name)
        text: str = self._store.get_template(key)

        missing: Set[str] = set(self.required_placeholders(key)) - set(context)
        if missing:
            raise TemplateContextError(key, missing)

        return self.substitute(text, context, template_name=key)

    def substitute(
        self,
        text: str,
        context: Mapping[str, str],
        *,
        template_name: str = "<inline>",
    ) -> str:
        """Replace every covered ``{{placeholder}}`` in *text* in one pass."""
        unmatched: Set[str] = set()

        def _replace(match: re.Match[str]) -> str:
            key: str = match.group(1)
            if key not in context:
                unmatched.add(key)
                return match.group(0)
            return str(context[key])

        rendered: str = _PLACEHOLDER_RE.sub(_replace, text)

        if unmatched:
            if self._strict:
                raise TemplateContextError(template_name, unmatched)
            logger.warning(
                "Template '%s' left %d placeholder(s) unfilled: %s",
                template_name,
                len(unmatched),
                ", ".join(sorted(unmatched)),
            )

        logger.debug("Rendered template '%s': %d chars.", template_name, len(rendered))
        return rendered


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "TEMPLATE_PLACEHOLDERS",
    "STUB_FILENAMES",
    "BUILTIN_STUBS",
    "TemplateKey",
    "TemplateStore",
    "BuiltinTemplateStore",
    "DirectoryTemplateStore",
    "LayeredTemplateStore",
    "TemplateRenderer",
    "build_template_store",
    "find_placeholders",
    "template_key",
]

logger.debug("crudgen.templates loaded.")

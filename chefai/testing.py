"""
In-memory test doubles: a scripted generation backend and a minimal
Firestore client. Used by the test suite and for running the API offline.
"""
import base64
import copy
import itertools
import uuid
from typing import Any, Callable, Dict, List, Optional, Union

from chefai.ai.backend import BackendResponse, GenerationBackend, GenerationRequest
from chefai.ai.registry import TemplateKind

Reply = Union[BackendResponse, Exception, Callable[[GenerationRequest], BackendResponse]]


def pcm_data_uri(pcm: bytes, rate: int = 24000) -> str:
    """Speech backend style payload: base64 raw PCM."""
    return f"data:audio/L16;codec=pcm;rate={rate};base64," + base64.b64encode(pcm).decode("ascii")


def png_data_uri(data: bytes = b"\x89PNG\r\n\x1a\nfake") -> str:
    return "data:image/png;base64," + base64.b64encode(data).decode("ascii")


def sample_recipe_data(name: str = "Tortilla de patatas", steps: int = 3) -> Dict[str, Any]:
    """A recipe document as the text model returns it."""
    return {
        "name": name,
        "ingredients": ["4 huevos", "3 patatas", "1 cebolla", "Aceite de oliva"],
        "instructions": [f"{i}. Paso {i} de {name}." for i in range(1, steps + 1)],
        "equipment": ["Sartén", "Cuchillo"],
        "benefits": "Rica en proteínas.",
        "nutritionalTable": {"calories": "350kcal", "protein": "14g", "carbs": "30g", "fats": "18g"},
    }


def sample_plan_data(days: int, label: str = "Día") -> Dict[str, Any]:
    return {
        "weeklyMealPlan": [
            {
                "day": f"{label} {i}",
                "breakfast": sample_recipe_data(f"Desayuno {i}", steps=1),
                "lunch": sample_recipe_data(f"Almuerzo {i}", steps=1),
                "comida": sample_recipe_data(f"Comida {i}", steps=2),
                "dinner": sample_recipe_data(f"Cena {i}", steps=1),
            }
            for i in range(1, days + 1)
        ]
    }


class StubBackend(GenerationBackend):
    """
    Backend that answers from a script instead of the network.

    Replies are registered per template name or per kind; a reply can be a
    BackendResponse, an exception to raise, or a callable of the request.
    Every request is recorded in `calls`.
    """

    def __init__(self):
        self.calls: List[GenerationRequest] = []
        self._by_template: Dict[str, List[Reply]] = {}
        self._by_kind: Dict[TemplateKind, Reply] = {
            TemplateKind.TEXT: BackendResponse(text="OK"),
            TemplateKind.IMAGE: BackendResponse(media_url=png_data_uri()),
            TemplateKind.SPEECH: BackendResponse(media_url=pcm_data_uri(b"\x00\x01" * 240)),
        }

    def reply(self, template_name: str, *replies: Reply) -> "StubBackend":
        """Queue replies for a template; the last one repeats."""
        self._by_template[template_name] = list(replies)
        return self

    def reply_kind(self, kind: TemplateKind, reply: Reply) -> "StubBackend":
        self._by_kind[kind] = reply
        return self

    def calls_for(self, template_name: str) -> List[GenerationRequest]:
        return [call for call in self.calls if call.template_name == template_name]

    async def generate(self, request: GenerationRequest) -> BackendResponse:
        self.calls.append(request)
        queued = self._by_template.get(request.template_name)
        if queued:
            reply = queued.pop(0) if len(queued) > 1 else queued[0]
        else:
            reply = self._by_kind[request.kind]

        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        return reply


class _Snapshot:
    def __init__(self, doc_id: str, data: Optional[Dict[str, Any]], reference=None):
        self.id = doc_id
        self._data = data
        self.reference = reference

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._data)


class FakeDocument:
    def __init__(self, store: Dict[str, Any], path: str, doc_id: str):
        self._store = store
        self.path = path
        self.id = doc_id

    def get(self) -> _Snapshot:
        return _Snapshot(self.id, self._store.get(self.path), self)

    def set(self, data: Dict[str, Any]) -> None:
        self._store[self.path] = copy.deepcopy(data)

    def update(self, data: Dict[str, Any]) -> None:
        if self.path not in self._store:
            raise KeyError(f"No document to update: {self.path}")
        self._store[self.path].update(copy.deepcopy(data))

    def delete(self) -> None:
        self._store.pop(self.path, None)

    def collection(self, name: str) -> "FakeCollection":
        return FakeCollection(self._store, f"{self.path}/{name}")


class FakeCollection:
    _ids = itertools.count(1)

    def __init__(self, store: Dict[str, Any], path: str, order=None, limit_to=None):
        self._store = store
        self.path = path
        self._order = order
        self._limit = limit_to

    def document(self, doc_id: Optional[str] = None) -> FakeDocument:
        doc_id = doc_id or f"doc{next(self._ids)}-{uuid.uuid4().hex[:6]}"
        return FakeDocument(self._store, f"{self.path}/{doc_id}", doc_id)

    def order_by(self, field: str, direction: str = "ASCENDING") -> "FakeCollection":
        return FakeCollection(self._store, self.path, (field, direction), self._limit)

    def limit(self, count: int) -> "FakeCollection":
        return FakeCollection(self._store, self.path, self._order, count)

    def get(self) -> List[_Snapshot]:
        prefix = self.path + "/"
        docs = [
            FakeDocument(self._store, path, path[len(prefix):])
            for path in self._store
            if path.startswith(prefix) and "/" not in path[len(prefix):]
        ]
        snapshots = [doc.get() for doc in docs]
        if self._order is not None:
            field, direction = self._order
            snapshots.sort(
                key=lambda snap: snap.to_dict().get(field),
                reverse=str(direction).upper() == "DESCENDING",
            )
        if self._limit is not None:
            snapshots = snapshots[: self._limit]
        return snapshots

    stream = get


class FakeFirestore:
    """Dictionary-backed stand-in for a Firestore client."""

    def __init__(self):
        self.store: Dict[str, Dict[str, Any]] = {}

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self.store, name)


class FakeMediaStorage:
    """Records uploads instead of sending them to a bucket."""

    def __init__(self):
        self.uploads: Dict[str, str] = {}

    def upload_data_uri(self, user_id: str, path: str, data_uri: str) -> str:
        key = f"users/{user_id}/{path}"
        self.uploads[key] = data_uri
        return f"https://storage.example.com/{key}"

    def delete(self, user_id: str, path: str) -> None:
        self.uploads.pop(f"users/{user_id}/{path}", None)

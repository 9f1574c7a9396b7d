import asyncio
from typing import Generic, Type, TypeVar

from beanie import Document, init_beanie
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import GEOSPHERE, IndexModel

from geodoc.core import GeoDoc, ifnone
from geodoc.database.geo import Geometry, encode


class GeoDocument(Document):
    """
    Base document class for MongoDB collections holding GeoJSON geometries.

    Extends Beanie's Document so that every geometry field is stored as a GeoJSON sub-document
    (``{"type": ..., "coordinates": ...}``), which is the form MongoDB's ``2dsphere`` indexes and geospatial operators
    expect. Geometry fields read back from the database are decoded by the geometry models themselves.

    Subclasses that declare their own ``Settings`` should derive it from ``GeoDocument.Settings`` to keep the GeoJSON
    encoder.

    Example:
        .. code-block:: python

            from geodoc.database import GeoDocument, geosphere_index
            from geodoc.database.geo import Point, Polygon

            class Parcel(GeoDocument):
                name: str
                centroid: Point
                boundary: Polygon

                class Settings(GeoDocument.Settings):
                    name = "parcels"
                    indexes = [geosphere_index("boundary")]
    """

    class Settings:
        """
        Configuration settings for the document.

        Attributes:
            use_cache (bool): Whether to enable caching for this document type.
            bson_encoders (dict): Encoders applied when writing to MongoDB; geometries become GeoJSON.
        """

        use_cache = False
        bson_encoders = {Geometry: encode}


def geosphere_index(*fields: str, **kwargs) -> IndexModel:
    """Build a ``2dsphere`` index over the given geometry fields.

    Args:
        *fields: Names of the indexed fields, in key order.
        **kwargs: Extra index options passed to ``pymongo.IndexModel`` (e.g. ``name``, ``sparse``).

    Example:
        .. code-block:: python

            geosphere_index("boundary", name="boundary_2dsphere")
    """
    if not fields:
        raise ValueError("A geosphere index needs at least one field.")
    return IndexModel([(field, GEOSPHERE) for field in fields], **kwargs)


T = TypeVar("T", bound=GeoDocument)


class MongoGeoODMBackend(GeoDoc, Generic[T]):
    """
    MongoDB backend for GeoDocument models.

    Holds a Motor client, the database name and the document model. Creating the backend performs no I/O: Motor
    connects lazily, so a backend can be built (and handed to the rest of an application) while no database is
    running. The model is registered with Beanie on the first call to :meth:`initialize`.

    Args:
        model_cls (Type[T]): The document model class served by this backend.
        db_uri (str | None): MongoDB connection URI. Defaults to the ``GEODOC_MONGO.DB_URI`` setting.
        db_name (str | None): Name of the MongoDB database. Defaults to the ``GEODOC_MONGO.DB_NAME`` setting.
        **kwargs: Passed on to :class:`GeoDoc` (``config_overrides``, logger options).

    Example:
        .. code-block:: python

            from geodoc.database import MongoGeoODMBackend

            backend = MongoGeoODMBackend(model_cls=Parcel, db_uri="mongodb://localhost:27017", db_name="cadastre")
            await backend.initialize()
    """

    def __init__(self, model_cls: Type[T], db_uri: str | None = None, db_name: str | None = None, **kwargs):
        super().__init__(**kwargs)
        self.model_cls: Type[T] = model_cls
        self.db_name: str = ifnone(db_name, self.config.GEODOC_MONGO.DB_NAME)
        self.client = AsyncIOMotorClient(ifnone(db_uri, self.config.get_secret("GEODOC_MONGO", "DB_URI")))
        self._is_initialized = False
        self.logger.debug(f"Created {self.name} for {model_cls.__name__} in database '{self.db_name}'.")

    @property
    def database(self) -> AsyncIOMotorDatabase:
        """The Motor database handle. Obtaining it does not contact the server."""
        return self.client[self.db_name]

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    def is_async(self) -> bool:
        """Always True: MongoDB operations go through Motor's asyncio API."""
        return True

    @GeoDoc.autolog()
    async def initialize(self):
        """
        Register the document model with Beanie.

        Safe to call repeatedly; only the first call does any work.

        Example:
            .. code-block:: python

                backend = MongoGeoODMBackend(Parcel, "mongodb://localhost:27017", "cadastre")
                await backend.initialize()
        """
        if not self._is_initialized:
            await init_beanie(database=self.database, document_models=[self.model_cls])
            self._is_initialized = True

    def initialize_sync(self):
        """
        Synchronous wrapper around :meth:`initialize`.

        Raises:
            RuntimeError: If called while an event loop is running; use ``await initialize()`` there instead.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self.initialize())
            return
        raise RuntimeError("initialize_sync() called from async context. Use await initialize() instead.")

    def get_raw_model(self) -> Type[T]:
        """Return the document model class used by this backend."""
        return self.model_cls

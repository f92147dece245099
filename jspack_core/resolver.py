"""
Specifier resolution - maps an import specifier to a module identity.

An identity is the module's real path relative to the build root, with POSIX
separators, e.g. `./src/a.js`. Relative specifiers are resolved against the
importing module's directory; bare specifiers are handed to a pluggable
PackageResolver.
"""
import json
import os
from abc import ABC, abstractmethod

from jspack_core.errors import ModuleNotFoundError


DEFAULT_EXTENSIONS = (".js", ".mjs", ".cjs", ".json", ".css")


def to_identity(path, root):
    """Canonical identity of the file at `path` for a build rooted at `root`."""
    real = os.path.realpath(path)
    rel = os.path.relpath(real, os.path.realpath(root)).replace(os.sep, "/")
    if rel.startswith("../") or rel == "..":
        return rel
    return "./" + rel


def to_path(identity, root):
    """Absolute filesystem path for an identity."""
    return os.path.normpath(os.path.join(os.path.realpath(root), *identity.split("/")))


def is_relative(specifier):
    return specifier.startswith("./") or specifier.startswith("../") or specifier in (".", "..")


def is_readable(path):
    return os.path.isfile(path) and os.access(path, os.R_OK)


def find_file(base, extensions):
    """
    Locate the file a path-like specifier refers to.

    Tries the exact path, then each extension appended, then an index file
    inside the directory. Files that cannot be read do not count. Returns None
    if nothing matches.
    """
    if is_readable(base):
        return base
    for extension in extensions:
        if is_readable(base + extension):
            return base + extension
    if os.path.isdir(base):
        for extension in extensions:
            index = os.path.join(base, "index" + extension)
            if is_readable(index):
                return index
    return None


def split_package_specifier(specifier):
    """Split `@scope/name/sub/path` into (`@scope/name`, `sub/path`)."""
    parts = specifier.split("/")
    if specifier.startswith("@") and len(parts) > 1:
        return "/".join(parts[:2]), "/".join(parts[2:])
    return parts[0], "/".join(parts[1:])


class PackageResolver(ABC):
    """Strategy for specifiers that are not relative paths."""

    @abstractmethod
    def locate(self, specifier, importer_dir, extensions):
        """Return the file path for a bare specifier, or None."""
        pass


class NodeModulesResolver(PackageResolver):
    """
    Looks packages up in `node_modules` directories.

    Walks from the importer's directory towards the filesystem root. A bare
    package name is resolved through the package.json entry fields (in order),
    a deep import (`pkg/sub/file`) relative to the package directory.
    """

    def __init__(self, modules_dir="node_modules", fields=("module", "main")):
        self.modules_dir = modules_dir
        self.fields = tuple(fields)

    def package_dirs(self, name, importer_dir):
        current = os.path.abspath(importer_dir)
        while True:
            candidate = os.path.join(current, self.modules_dir, *name.split("/"))
            if os.path.isdir(candidate):
                yield candidate
            parent = os.path.dirname(current)
            if parent == current:
                return
            current = parent

    def entry_point(self, package_dir):
        manifest = os.path.join(package_dir, "package.json")
        if os.path.isfile(manifest):
            with open(manifest, 'r', encoding='utf-8') as f:
                try:
                    meta = json.load(f)
                except ValueError:
                    meta = {}
            for field in self.fields:
                value = meta.get(field) if isinstance(meta, dict) else None
                if isinstance(value, str) and value:
                    return os.path.join(package_dir, *value.split("/"))
        return os.path.join(package_dir, "index")

    def locate(self, specifier, importer_dir, extensions):
        name, subpath = split_package_specifier(specifier)
        for package_dir in self.package_dirs(name, importer_dir):
            if subpath:
                base = os.path.join(package_dir, *subpath.split("/"))
            else:
                base = self.entry_point(package_dir)
            found = find_file(base, extensions)
            if found:
                return found
        return None


class SpecifierResolver:
    """Resolves raw specifiers to identities for one build root."""

    def __init__(self, root=".", extensions=DEFAULT_EXTENSIONS, package_resolver=None):
        self.root = os.path.realpath(root)
        self.extensions = tuple(extensions)
        self.package_resolver = package_resolver or NodeModulesResolver()

    def identity_of(self, path):
        return to_identity(path, self.root)

    def path_of(self, identity):
        return to_path(identity, self.root)

    def entry(self, entry_path):
        """Identity of the entry module; it must exist on disk."""
        found = find_file(os.path.abspath(entry_path), self.extensions)
        if found is None:
            raise ModuleNotFoundError(str(entry_path), importer=None)
        return self.identity_of(found)

    def locate(self, specifier, importer):
        """Filesystem path a specifier points at, or None."""
        importer_dir = os.path.dirname(self.path_of(importer))
        if is_relative(specifier):
            base = os.path.normpath(os.path.join(importer_dir, *specifier.split("/")))
            return find_file(base, self.extensions)
        if specifier.startswith("/"):
            base = os.path.normpath(os.path.join(self.root, *specifier.lstrip("/").split("/")))
            return find_file(base, self.extensions)
        return self.package_resolver.locate(specifier, importer_dir, self.extensions)

    def resolve(self, specifier, importer):
        """
        Map `specifier`, as written in module `importer`, to an identity.

        Raises:
            ModuleNotFoundError: If no readable file matches the specifier.
        """
        found = self.locate(specifier, importer)
        if found is None:
            raise ModuleNotFoundError(specifier, importer=importer)
        return self.identity_of(found)


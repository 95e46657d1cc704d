"""Test fixtures for protonest tests.

This module provides sample generator output and an in-memory generator for
driving the pipeline without protoc.
"""

from protonest.codegen.units import GeneratedUnit, extract_doc_comments

# Output of the prost plugin for a small package with doc comments.
MESSAGE_SOURCE = '''\
/// A test message.
#[derive(Clone, PartialEq, ::prost::Message)]
pub struct TestMessage {
    /// The first field.
    ///
    ///     let x = 5;
    #[prost(int32, tag = "1")]
    pub field_one: i32,
    /// Plain prose.
    #[prost(string, tag = "2")]
    pub field_two: ::prost::alloc::string::String,
}
/// Nested message and enum types in `TestMessage`.
pub mod test_message {
    /// Kinds of things.
    #[derive(Clone, Copy, Debug, PartialEq, Eq, Hash, PartialOrd, Ord, ::prost::Enumeration)]
    #[repr(i32)]
    pub enum Kind {
        /// Nothing at all.
        Unspecified = 0,
    }
    impl Kind {
        /// String value of the enum field names used in the ProtoBuf definition.
        pub fn as_str_name(&self) -> &'static str {
            match self {
                Self::Unspecified => "KIND_UNSPECIFIED",
            }
        }
    }
}
'''

# A doc comment holding a JSON sample in an unlabeled fence.
FENCED_SOURCE = '''\
/// Example payload:
/// ```
/// { "id": 1 }
/// ```
#[derive(Clone, PartialEq, ::prost::Message)]
pub struct Payload {
    #[prost(int64, tag = "1")]
    pub id: i64,
}
'''


def make_unit(
    package: str, source: str = '', origin: str | None = None
) -> GeneratedUnit:
    """Create a unit for a dotted package, scanning its doc comments."""
    package_path = tuple(package.split('.')) if package else ()
    if not source:
        source = f'pub struct {"".join(p.title() for p in package_path) or "Root"} {{}}\n'
    return GeneratedUnit(
        package_path=package_path,
        source_text=source,
        raw_comments=extract_doc_comments(source, package_path),
        origin=origin or f'{package or "_"}.rs',
    )


class FakeGenerator:
    """Generator returning a fixed list of units."""

    def __init__(self, units, version=None):
        self.units = list(units)
        self._version = version
        self.calls = []

    @property
    def version(self):
        return self._version

    def generate(self, definition_files, include_paths):
        self.calls.append((list(definition_files), list(include_paths)))
        return list(self.units)

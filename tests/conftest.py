"""Shared fixtures for building MSBuild project files."""

import pytest


MSBUILD_NS = "http://schemas.microsoft.com/developer/msbuild/2003"


def project_xml(body, namespace=MSBUILD_NS):
    """Wrap *body* in a <Project> root element."""
    xmlns = ' xmlns="{}"'.format(namespace) if namespace else ""
    return '<?xml version="1.0" encoding="utf-8"?>\n<Project{}>\n{}\n</Project>\n'.format(
        xmlns, body
    )


def simple_project_xml(assembly_name, references=()):
    """A project with one assembly name and plain references in one item group."""
    items = "\n".join(
        '    <Reference Include="{}" />'.format(ref) for ref in references
    )
    return project_xml(
        "  <PropertyGroup>\n"
        "    <AssemblyName>{}</AssemblyName>\n"
        "  </PropertyGroup>\n"
        "  <ItemGroup>\n{}\n  </ItemGroup>".format(assembly_name, items)
    )


@pytest.fixture
def write_project():
    """Write a simple project file, creating parent directories."""

    def _write(path, assembly_name, references=()):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(simple_project_xml(assembly_name, references), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def parse_project():
    """Parse a project body into a DOM document."""
    from xml.dom import minidom

    def _parse(body, namespace=MSBUILD_NS):
        return minidom.parseString(project_xml(body, namespace))

    return _parse

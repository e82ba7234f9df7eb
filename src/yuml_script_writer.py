'''Writes a script for yUML (http://yuml.me/) that draws how the MSBuild projects
found in a directory tree reference each other and their libraries.'''

import os
import sys
import fnmatch
import collections
import logging
import time
import xml.dom
import xml.dom.minidom as minidom
import xml.parsers.expat


USAGE = '''Usage: yuml-script-writer <rootDirectory>

  e.g. yuml-script-writer ~/repos/
'''

SCRIPT_FILENAME_BASE = 'yumlScript'
SCRIPT_FILENAME_EXTENSION = '.txt'

# Assumption: any file with an extension ending with proj is a MSBuild project file.
PROJECT_FILE_PATTERN = '*.*proj'


DescriptorDialect = collections.namedtuple('DescriptorDialect', [
    'namespace',
    'assembly_name',
    'item_group',
    'reference',
    'project_reference',
    'reference_name',
    'include_attribute',
    'ignore_prefixes',
])

# See http://msdn.microsoft.com/en-us/library/bcxfsh87.aspx for the project structure.
MSBUILD_DIALECT = DescriptorDialect(
    namespace='http://schemas.microsoft.com/developer/msbuild/2003',
    # the assembly (or executable) the project is compiled to
    assembly_name='AssemblyName',
    item_group='ItemGroup',
    reference='Reference',
    project_reference='ProjectReference',
    # project references keep the assembly name in a child element
    reference_name='Name',
    include_attribute='Include',
    ignore_prefixes=('System', 'Microsoft'),
)

# SDK-style projects declare no xml namespace
SDK_DIALECT = MSBUILD_DIALECT._replace(namespace=None)


class DescriptorError(Exception):
    '''Base class for the errors raised while reading a project file'''


class MalformedDescriptorError(DescriptorError):
    '''The project is valid xml but lacks a required element or attribute'''


class UnparsableDescriptorError(DescriptorError):
    '''The project file is not well-formed xml'''


def load_project(project_filepath):
    try:
        return minidom.parse(project_filepath)
    except xml.parsers.expat.ExpatError as error:
        raise UnparsableDescriptorError('Failed to parse project [{}]: {}'.format(
            project_filepath, error)) from error


def get_node_text(node):
    '''Returns the text of all text descendants of the node joined together'''
    parts = []
    for child in node.childNodes:
        if child.nodeType in (xml.dom.Node.TEXT_NODE, xml.dom.Node.CDATA_SECTION_NODE):
            parts.append(child.data)
        elif child.nodeType == xml.dom.Node.ELEMENT_NODE:
            parts.append(get_node_text(child))

    return ''.join(parts)


class ProjectParser:
    '''Extracts the assembly name and the references of a parsed MSBuild project'''
    def __init__(self, dialect=MSBUILD_DIALECT):
        self.dialect = dialect

    def _find_elements(self, node, tag):
        return node.getElementsByTagNameNS(self.dialect.namespace, tag)

    def _is_element(self, node, tag):
        return (node.nodeType == xml.dom.Node.ELEMENT_NODE and
                node.namespaceURI == self.dialect.namespace and
                node.localName == tag)

    def _find_child_element(self, parent_node, tag):
        for node in parent_node.childNodes:
            if self._is_element(node, tag):
                return node
        return None

    def get_assembly_name(self, project_dom):
        tag = self.dialect.assembly_name
        assembly_name_nodes = self._find_elements(project_dom, tag)

        if not assembly_name_nodes:
            raise MalformedDescriptorError(
                "Project is missing the '{}' element.".format(tag))
        if len(assembly_name_nodes) > 1:
            raise MalformedDescriptorError(
                "Project has {} '{}' elements, expected exactly one.".format(
                    len(assembly_name_nodes), tag))

        return get_node_text(assembly_name_nodes[0])

    def get_references(self, project_dom):
        '''Returns the references of every item group in document order.
           Duplicates are kept.'''
        references = []

        for item_group_node in self._find_elements(project_dom, self.dialect.item_group):
            references.extend(self._get_item_group_references(item_group_node))

        return references

    def _get_item_group_references(self, item_group_node):
        dialect = self.dialect

        for item_node in item_group_node.childNodes:
            is_project_reference = self._is_element(item_node, dialect.project_reference)
            if not is_project_reference and \
                    not self._is_element(item_node, dialect.reference):
                # items other than references are not dependencies
                continue

            # Include is required on every item, see http://msdn.microsoft.com/en-us/library/ms164283.aspx
            if not item_node.hasAttribute(dialect.include_attribute):
                raise MalformedDescriptorError(
                    "The '{}' attribute was missing from the '{}' element.".format(
                        dialect.include_attribute, item_node.localName))

            if is_project_reference:
                # Include holds the relative path of the project, not its name
                name_node = self._find_child_element(item_node, dialect.reference_name)
                if name_node is None:
                    raise MalformedDescriptorError(
                        "The '{}' element was missing from a '{}' element.".format(
                            dialect.reference_name, dialect.project_reference))
                reference_name = get_node_text(name_node)
            else:
                reference_name = item_node.getAttribute(dialect.include_attribute)

            if reference_name.startswith(tuple(dialect.ignore_prefixes)):
                continue

            # "ProjectA, Version=1.0.0.0, Culture=neutral" -> "ProjectA"
            if ',' in reference_name:
                reference_name = reference_name[:reference_name.index(',')]

            yield reference_name


def get_script_filename(directory='.'):
    '''Returns the first of yumlScript.txt, yumlScript1.txt, ... missing in the directory'''
    filename = os.path.join(directory, SCRIPT_FILENAME_BASE + SCRIPT_FILENAME_EXTENSION)
    adjustment = 1
    while os.path.exists(filename):
        filename = os.path.join(directory, '{}{}{}'.format(
            SCRIPT_FILENAME_BASE, adjustment, SCRIPT_FILENAME_EXTENSION))
        adjustment += 1

    return filename


class ScriptWriter:
    def __init__(self, root_directory_path, project_parser=None,
                 project_file_pattern=PROJECT_FILE_PATTERN):
        self.root_directory_path = root_directory_path
        self.project_parser = project_parser or ProjectParser()
        self.project_file_pattern = project_file_pattern

    def write_script(self, output_directory='.'):
        script_filename = get_script_filename(output_directory)
        logging.info('Writing script to [%s]', script_filename)

        # a failed run leaves the partially written script behind
        with open(script_filename, 'x', encoding='utf-8') as script_file:
            projects_number = self.write_to(script_file)

        logging.info('%d projects written to [%s]', projects_number, script_filename)
        return script_filename

    def write_to(self, script_file):
        '''Writes the script for every project under the root directory.
           Returns the number of projects written.'''
        return self._write_scripts_for_directory(script_file, self.root_directory_path)

    def _write_scripts_for_directory(self, script_file, directory_path):
        # projects of the directory first, then the subdirectories, both in listing order
        with os.scandir(directory_path) as entries:
            entries = list(entries)

        projects_number = 0
        for entry in entries:
            if entry.is_file() and fnmatch.fnmatch(entry.name, self.project_file_pattern):
                self.write_script_for_project(script_file, entry.path)
                projects_number += 1

        for entry in entries:
            if entry.is_dir():
                projects_number += self._write_scripts_for_directory(script_file, entry.path)

        return projects_number

    def write_script_for_project(self, script_file, project_filepath):
        logging.debug('Processing: %s', project_filepath)

        try:
            project_dom = load_project(project_filepath)
            try:
                project_name = self.project_parser.get_assembly_name(project_dom)
                project_references = self.project_parser.get_references(project_dom)
            finally:
                project_dom.unlink()
        except DescriptorError:
            logging.error('Failed to read project [%s].', project_filepath)
            raise

        script_file.write('// {}\n'.format(project_name))
        for reference in project_references:
            script_file.write('[{}]->[{}]\n'.format(project_name, reference))


def main(args_list=None):
    if args_list is None:
        args_list = sys.argv[1:]

    if len(args_list) != 1:
        print(USAGE)
        return 0

    logging_format = '%(asctime)s %(levelname)s: %(message)s'
    logging.basicConfig(format=logging_format, level=logging.DEBUG)

    start_time = time.perf_counter()
    try:
        ScriptWriter(args_list[0]).write_script()
    except Exception as error:
        print('Error: {}'.format(error))
        return 1
    end_time = time.perf_counter()
    logging.info('Total time spent: %0.7f secs', end_time - start_time)

    return 0


if __name__ == '__main__':
    sys.exit(main())

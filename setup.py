# type: ignore
from setuptools import find_packages, setup

# Get VERSION constant from kitbase_flags.version - we can't simply import that module because
# kitbase_flags/__init__.py imports modules that require dependencies we may not have loaded yet.
version_module_globals = {}
with open('./kitbase_flags/version.py') as f:
    exec(f.read(), version_module_globals)
kitbase_flags_version = version_module_globals['VERSION']


def parse_requirements(filename):
    """ load requirements from a pip requirements file """
    lineiter = (line.strip() for line in open(filename))
    return [line for line in lineiter if line and not line.startswith("#")]


install_reqs = parse_requirements('requirements.txt')
test_reqs = parse_requirements('test-requirements.txt')

setup(
    name='kitbase-flags',
    version=kitbase_flags_version,
    author='Kitbase',
    packages=find_packages(include=['kitbase_flags', 'kitbase_flags.*']),
    url='https://github.com/kitbase/kitbase-sdk',
    description='Kitbase feature flags SDK for Python',
    long_description='Kitbase feature flags SDK for Python, with remote and local evaluation',
    install_requires=install_reqs,
    python_requires='>=3.8',
    classifiers=[
        'Intended Audience :: Developers',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Topic :: Software Development',
        'Topic :: Software Development :: Libraries',
    ],
    extras_require={
        "test": test_reqs,
    },
)

from setuptools import setup, find_packages


with open('README.md') as f:
    readme = f.read()

setup(
    name='ovslab',
    version='0.1.0',
    description='Open vSwitch and Docker network lab manager',
    long_description=readme,
    long_description_content_type='text/markdown',
    author='',
    author_email='',
    url='',
    package_dir={'': 'src'},
    packages=find_packages('src', exclude=('tests', 'tests.*')),
    python_requires='>=3.10',
    install_requires=[
        'docker',
        'PyYAML',
        'deepdiff',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'ovslab=ovslab.main:main',
        ],
    },
)

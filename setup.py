from setuptools import find_namespace_packages, setup

setup(
    name='cssurls',
    version='0.1.0',
    description='CSS tokenizer per CSS Syntax Level 3, with segmentation of stylesheets around the URLs they reference',
    package_dir={ '': 'src' },
    packages=find_namespace_packages(where='src'), # `cssurls.syntax` is a namespace package (no `__init__.py`)
    python_requires='>=3.11', # `enum.StrEnum`
    extras_require={ 'test': [ 'pytest' ] },
)

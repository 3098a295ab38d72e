import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="otstruct",
    version="0.0.1",
    description="OpenType tables as records",
    long_description=long_description,
    long_description_content_type="text/markdown",
    python_requires='>=3.8',
    packages=setuptools.find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        'bitstring',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)

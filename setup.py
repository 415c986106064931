import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()


setuptools.setup(
    name="hierinterp",
    version="0.1.0",
    description=("Adaptive hierarchical interpolation on nested sparse grids "
                 "for uncertainty quantification"),
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(include=["hierinterp", "hierinterp.*"]),
    python_requires='>=3.7',
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    install_requires=[
        'numpy >= 1.16.4',
        'matplotlib',
        'scipy >= 1.0.0',
    ],
    extras_require={
        'test': ['pytest>=4.6'],
        'docs': ['numpydoc', 'sphinx', 'sphinx_automodapi', 'sphinx_rtd_theme']
    },
    license='MIT',
)

# to run all tests use
# python -m unittest discover hierinterp
# or
# pytest hierinterp

# to install packages needed to run the tests use
# pip install -e .[test]

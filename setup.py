"""Build configuration for Print Board.

Usage:
    pip install -e .[test]       # development install
    python setup.py py2app       # macOS app bundle: dist/Print Board.app
"""
import sys

from setuptools import setup

APP = ['printboard_app.py']
DATA_FILES = []
OPTIONS = {
    'argv_emulation': False,  # must be False for Qt apps
    'plist': {
        'CFBundleName': 'Print Board',
        'CFBundleDisplayName': 'Print Board',
        'CFBundleIdentifier': 'com.printboard.app',
        'CFBundleVersion': '1.0.0',
        'CFBundleShortVersionString': '1.0',
        'LSMinimumSystemVersion': '11.0',
        'NSHighResolutionCapable': True,
        'CFBundleDocumentTypes': [{
            'CFBundleTypeName': 'Image',
            'CFBundleTypeRole': 'Viewer',
            'LSHandlerRank': 'Alternate',
            'LSItemContentTypes': ['public.image'],
        }],
    },
    'packages': ['PySide6', 'PIL', 'pillow_heif'],
    'strip': False,  # avoid "Operation not permitted" on macOS SIP-protected binaries
}

# py2app is macOS-only; only pull it in when building the bundle
bundle = {}
if 'py2app' in sys.argv:
    bundle = dict(
        app=APP,
        data_files=DATA_FILES,
        options={'py2app': OPTIONS},
        setup_requires=['py2app'],
    )

setup(
    name='printboard',
    version='1.0.0',
    description='Arrange photos on a canvas at their real print size',
    python_requires='>=3.10',
    py_modules=[
        'models', 'geometry', 'layer_stack', 'viewport', 'uploads',
        'views', 'controller', 'printboard_app',
    ],
    install_requires=['PySide6<6.12', 'Pillow', 'pillow-heif'],
    extras_require={'test': ['pytest', 'pytest-qt']},
    entry_points={'gui_scripts': ['printboard = printboard_app:main']},
    **bundle,
)

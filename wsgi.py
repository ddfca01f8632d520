import os
import sys

# Add the src directory to the Python path
src_path = os.path.join(os.path.abspath('.'), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from citation_engine.web import create_app

application = create_app()

if __name__ == "__main__":
    application.run(debug=True)

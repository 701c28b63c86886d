from stockmanager import create_app

app = create_app()

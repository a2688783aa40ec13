from sessiontab.app import create_app

# Vercel picks up the module-level WSGI app
app = create_app()

# Vercel ignores this block, but it's useful for local testing
if __name__ == '__main__':
    app.run(debug=True, port=5000)

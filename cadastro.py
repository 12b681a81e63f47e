# cadastro.py
import argparse
import getpass

import models
from database import SessionLocal_App, engine_app
from security import create_user


def cadastrar_usuario(username, password, is_master=True):
    print(f"--- Iniciando cadastro do usuário: {username} ---")

    if not username or not password:
        print("ERRO: Usuário e senha são obrigatórios.")
        return None

    models.Base.metadata.create_all(bind=engine_app)
    db = SessionLocal_App()
    try:
        user = create_user(db, username, password, is_master=is_master)
        perfil = "master" if user.is_master else "comum"
        print(f"SUCESSO! Usuário '{user.username}' salvo com perfil {perfil}.")
        return user
    finally:
        db.close()


# --- Ponto de entrada do script ---
if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Cadastra usuários autorizados a liberar períodos fechados.")
    parser.add_argument("username")
    parser.add_argument("--comum", action="store_true", help="cadastra sem perfil master")
    args = parser.parse_args()
    senha = getpass.getpass("Senha: ")
    cadastrar_usuario(args.username, senha, is_master=not args.comum)
